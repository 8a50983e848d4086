from datetime import date
from typing import Optional, Union
from urllib.parse import urlparse

import scrapy
from scrapy.exceptions import CloseSpider

from precedent_crawler.era import parse_gregorian_date
from precedent_crawler.errors import ListingFetchError
from precedent_crawler.extractor import FieldExtractor
from precedent_crawler.fetcher import DetailFetcher, classify_failure
from precedent_crawler.paginator import ListingPaginator
from precedent_crawler.pipelines import PrecedentCollector
from precedent_crawler.utility import COURTS_BASE_URL

LISTING_FAILED = "listing_failed"


def _as_date(value: Union[str, date]):
    return value if isinstance(value, date) else parse_gregorian_date(value)


class PrecedentSpider(scrapy.Spider):
    name = "precedents"

    @classmethod
    def from_crawler(cls, crawler, *args, **kwargs):
        kwargs.setdefault("base_url", crawler.settings.get("PRECEDENT_BASE_URL") or COURTS_BASE_URL)
        return super().from_crawler(crawler, *args, **kwargs)

    def __init__(self, start_date=None, end_date=None, collector: Optional[PrecedentCollector] = None,
                 base_url: str = COURTS_BASE_URL, *args, **kwargs):
        super().__init__(*args, **kwargs)
        if start_date is None or end_date is None:
            raise ValueError("start_date and end_date are required")
        self.start_date = _as_date(start_date)
        self.end_date = _as_date(end_date)
        self.allowed_domains = [urlparse(base_url).hostname]

        self.collector = collector or PrecedentCollector(self.start_date, self.end_date)
        self.paginator = ListingPaginator(
            self.start_date, self.end_date, base_url,
            callback=self.parse, errback=self.on_listing_error,
        )
        self.fetcher = DetailFetcher(
            FieldExtractor(base_url=base_url),
            callback=self.parse_detail, errback=self.on_detail_error,
        )

    async def start(self):
        self.logger.info("Crawling precedents decided %s..%s", self.start_date, self.end_date)
        yield self.paginator.first_request()

    def parse(self, response, **kwargs):
        page = self.paginator.read_page(response)
        self.crawler.stats.inc_value("precedents/listing_pages")
        if page.skipped:
            self.crawler.stats.inc_value("precedents/rows_out_of_range", page.skipped)
        self.logger.info("Found %d precedents on listing page %d (%d outside range)",
                         len(page.entries), page.page, page.skipped)

        for entry in page.entries:
            yield self.fetcher.request(entry)

        if page.next_request is not None:
            yield page.next_request

    def parse_detail(self, response, entry, **kwargs):
        yield self.fetcher.parse(response, entry)

    def on_detail_error(self, failure):
        yield self.fetcher.failed(failure)

    def on_listing_error(self, failure):
        url = failure.request.url
        error = classify_failure(failure)
        self.logger.error("Listing page %s failed after retries: %s", url, error.message)
        self.crawler.stats.inc_value("precedents/listing_failed")
        self.collector.fail(ListingFetchError(url, error))
        raise CloseSpider(LISTING_FAILED)
