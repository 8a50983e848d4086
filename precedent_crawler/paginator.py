import logging
import re
import unicodedata
from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional, Tuple
from urllib.parse import urlencode

import scrapy

from precedent_crawler.era import from_date, parse_era_date
from precedent_crawler.errors import EraCalendarError
from precedent_crawler.items import EraDate
from precedent_crawler.utility import COURTS_BASE_URL, sha256_bytes

logger = logging.getLogger(__name__)

LISTING_PATH = "/app/hanrei_jp/list1"
LISTING_PRIORITY = 10
ROWS_SELECTOR = "table > tbody > tr"
ROW_DATE_LABEL_RE = re.compile(r"^裁判年月日\s*:?\s*")
# e.g. "64297件中11～20件を表示"
PAGING_SELECTOR = "div.module-search-page-paging-parts2 > p::text"


@dataclass(frozen=True)
class ListingEntry:
    position: int
    url: str
    listed_date: Optional[EraDate]


@dataclass(frozen=True)
class ListingPage:
    page: int
    entries: Tuple[ListingEntry, ...]
    next_request: Optional[scrapy.Request]
    skipped: int = 0


class ListingPaginator:
    """Walks the search result pages for one date window, page after page.

    One instance covers one walk: the site keeps the cursor server side, so
    the walk cannot be resumed or restarted. Create a new paginator instead.
    """

    def __init__(self, start_date: date, end_date: date, base_url: str = COURTS_BASE_URL,
                 callback: Optional[Callable] = None, errback: Optional[Callable] = None):
        if start_date > end_date:
            raise ValueError(f"start date {start_date} is after end date {end_date}")
        self.start_date = start_date
        self.end_date = end_date
        self.base_url = base_url.rstrip("/")
        self.callback = callback
        self.errback = errback
        self._started = False
        self._exhausted = False
        self._page = 0
        self._discovered = 0
        self._signatures = set()

    @property
    def exhausted(self):
        return self._exhausted

    def page_url(self, page: int):
        start = from_date(self.start_date)
        end = from_date(self.end_date)
        params = [
            ("page", page),
            ("sort", 1),
            ("filter[judgeDateMode]", 2),
            ("filter[judgeGengoFrom]", start.era.glyph),
            ("filter[judgeYearFrom]", start.era_year),
            ("filter[judgeMonthFrom]", start.month),
            ("filter[judgeDayFrom]", start.day),
            ("filter[judgeGengoTo]", end.era.glyph),
            ("filter[judgeYearTo]", end.era_year),
            ("filter[judgeMonthTo]", end.month),
            ("filter[judgeDayTo]", end.day),
        ]
        return f"{self.base_url}{LISTING_PATH}?" + urlencode(params)

    def _request(self, page: int):
        self._page = page
        return scrapy.Request(
            self.page_url(page),
            callback=self.callback,
            errback=self.errback,
            priority=LISTING_PRIORITY,
            dont_filter=True,
            meta={"listing_page": page},
        )

    def first_request(self) -> scrapy.Request:
        if self._started:
            raise RuntimeError("ListingPaginator cannot be restarted; create a new one")
        self._started = True
        return self._request(1)

    def in_range(self, d: EraDate):
        return self.start_date <= d.to_date() <= self.end_date

    def _row_date(self, row):
        """The row's 裁判年月日 cell, or None when no single cell holds just a date.

        Case names can mention other dates, so only cells whose whole text is
        a date (optionally after the label) count.
        """
        dates = set()
        for cell in row.css("td"):
            text = unicodedata.normalize("NFKC", " ".join(t.strip() for t in cell.xpath(".//text()").getall()))
            text = ROW_DATE_LABEL_RE.sub("", text.strip())
            try:
                dates.add(parse_era_date(text, whole=True))
            except EraCalendarError:
                continue
        if len(dates) != 1:
            return None
        return dates.pop()

    def _total(self, response):
        text = response.css(PAGING_SELECTOR).get()
        if not text:
            return None, None
        numbers = [int(n) for n in re.findall(r"\d+", unicodedata.normalize("NFKC", text).replace(",", ""))]
        if len(numbers) < 3:
            return (numbers[0] if numbers else None), None
        return numbers[0], numbers[-1]

    def _finish(self, page, reason, entries=(), skipped=0):
        self._exhausted = True
        logger.info("Listing walk finished at page %d: %s", page, reason)
        return ListingPage(page, tuple(entries), None, skipped)

    def read_page(self, response) -> ListingPage:
        if not self._started or self._exhausted:
            raise RuntimeError("ListingPaginator is not walking")
        page = response.meta.get("listing_page", self._page)

        links = []
        for row in response.css(ROWS_SELECTOR):
            href = row.css("th > a::attr(href)").get() or row.css("a::attr(href)").get()
            if not href:
                continue
            links.append((response.urljoin(href.strip()), row))

        if not links:
            return self._finish(page, "no results")

        signature = sha256_bytes("\n".join(url for url, _ in links).encode("utf-8"))
        if signature in self._signatures:
            logger.warning("Listing page %d repeats an earlier page (%s)", page, response.url)
            return self._finish(page, "repeated page")
        self._signatures.add(signature)

        entries = []
        skipped = 0
        for url, row in links:
            listed = self._row_date(row)
            if listed is not None and not self.in_range(listed):
                skipped += 1
                continue
            entries.append(ListingEntry(self._discovered, url, listed))
            self._discovered += 1

        total, last = self._total(response)
        if total is not None and last is not None and last >= total:
            return self._finish(page, f"all {total} results listed", entries, skipped)

        return ListingPage(page, tuple(entries), self._request(page + 1), skipped)
