"""Field extraction for precedent detail pages (detail2 .. detail7).

A detail page lists its fields as ``<dl><dt>label</dt><dd>value</dd></dl>`` rows
inside ``div.module-search-page-table-parts-result-detail``. Which labels
appear depends on the kind of court, so every field is described by a
``FieldRule`` and looked up by label; adding a field means adding a rule.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Tuple

from bs4 import BeautifulSoup
from bs4.element import Tag

from precedent_crawler.era import find_gregorian_year, parse_era_date
from precedent_crawler.errors import DateMismatch, EraCalendarError, MalformedDetailPage, PartialExtractionFailure
from precedent_crawler.items import PrecedentRecord
from precedent_crawler.utility import COURTS_BASE_URL, absolute_url, lawsuit_id_from_url, remove_line_break, trial_type_from_url

logger = logging.getLogger(__name__)

DETAIL_ROWS_SELECTOR = "div.module-search-page-table-parts-result-detail > dl"

TEXT = "text"
LINE = "line"
LINK = "link"
DATE = "date"


@dataclass(frozen=True)
class FieldRule:
    name: str
    labels: Tuple[str, ...]
    kind: str = TEXT
    required: bool = False


FIELD_RULES: Tuple[FieldRule, ...] = (
    FieldRule("case_number", ("事件番号",), required=True),
    FieldRule("case_name", ("事件名",), required=True),
    FieldRule("date", ("裁判年月日",), DATE, required=True),
    FieldRule("court_name", ("裁判所名", "裁判所名・部", "法廷名"), LINE, required=True),
    FieldRule("full_page_link", ("全文",), LINK, required=True),
    FieldRule("right_skip", ("権利種別",)),
    FieldRule("lawsuit_type", ("訴訟類型",)),
    FieldRule("result_type", ("裁判種別",)),
    FieldRule("result", ("結果",)),
    FieldRule("article_info", ("判例集等巻・号・頁", "高裁判例集登載巻・号・頁")),
    FieldRule("original_court_name", ("原審裁判所名",), LINE),
    FieldRule("original_case_number", ("原審事件番号",)),
    FieldRule("original_date", ("原審裁判年月日",), DATE),
    FieldRule("original_result", ("原審結果",)),
    FieldRule("field", ("分野",)),
    FieldRule("gist", ("判示事項の要旨", "判示事項")),
    FieldRule("case_gist", ("裁判要旨",)),
    FieldRule("ref_law", ("参照法条",)),
)

# trial_type, lawsuit_id and detail_page_link come from the page address
URL_FIELDS = ("trial_type", "lawsuit_id", "detail_page_link")


def read_text(dd: Tag, base_url: str):
    paragraphs = [p.get_text().strip() for p in dd.find_all("p")]
    if paragraphs:
        return "\n".join(p for p in paragraphs if p)
    return dd.get_text().strip()


def read_line(dd: Tag, base_url: str):
    return remove_line_break(read_text(dd, base_url))


def read_link(dd: Tag, base_url: str):
    a = dd.select_one("ul > li > a[href]") or dd.find("a", href=True)
    if a is None or not a["href"].strip():
        raise ValueError("no link")
    return absolute_url(a["href"], base_url)


def read_date(dd: Tag, base_url: str):
    text = read_text(dd, base_url)
    date = parse_era_date(text)
    western = find_gregorian_year(text)
    if western is not None and western != date.year:
        raise DateMismatch("date", date.year, western)
    return date


READERS = {
    TEXT: read_text,
    LINE: read_line,
    LINK: read_link,
    DATE: read_date,
}


class FieldExtractor:
    def __init__(self, rules: Tuple[FieldRule, ...] = FIELD_RULES, base_url: str = COURTS_BASE_URL):
        self.rules = rules
        # detail page links resolve against the site root
        self.base_url = base_url
        self._rule_by_label = {label: rule for rule in rules for label in rule.labels}

    def rows(self, document: BeautifulSoup) -> Dict[str, Tag]:
        """Map each known label to its <dd>; the first row wins for a field."""
        out = {}
        for dl in document.select(DETAIL_ROWS_SELECTOR):
            dt = dl.find("dt")
            dd = dl.find("dd")
            if dt is None or dd is None:
                continue
            label = dt.get_text().strip()
            rule = self._rule_by_label.get(label)
            if rule is None:
                logger.debug("Ignoring unknown label %r", label)
                continue
            out.setdefault(rule.name, dd)
        return out

    def extract(self, document: BeautifulSoup, url: str) -> PrecedentRecord:
        if not document.select(DETAIL_ROWS_SELECTOR):
            raise MalformedDetailPage(f"{url}: no detail table")

        rows = self.rows(document)
        values = {}
        missing = []
        causes = {}

        for rule in self.rules:
            dd = rows.get(rule.name)
            if dd is None:
                if rule.required:
                    missing.append(rule.name)
                continue
            try:
                value = READERS[rule.kind](dd, self.base_url)
            except DateMismatch:
                raise
            except (EraCalendarError, ValueError) as e:
                if rule.required:
                    missing.append(rule.name)
                    causes[rule.name] = e
                else:
                    logger.warning("Dropping malformed %s on %s: %s", rule.name, url, e)
                continue
            if rule.required and value == "":
                missing.append(rule.name)
                continue
            values[rule.name] = value

        values["trial_type"] = trial_type_from_url(url)
        values["lawsuit_id"] = lawsuit_id_from_url(url)
        values["detail_page_link"] = url
        for name in URL_FIELDS:
            if not values[name]:
                missing.append(name)

        if missing:
            raise PartialExtractionFailure(missing, causes)
        return PrecedentRecord(**values)
