# Define your item pipelines here
#
# Don't forget to add your pipeline to the ITEM_PIPELINES setting
# See: https://docs.scrapy.org/en/latest/topics/item-pipeline.html
import logging
from datetime import date
from typing import Dict, Optional

from precedent_crawler.errors import ListingFetchError
from precedent_crawler.items import CrawlResult, DetailResult, PrecedentRecord

logger = logging.getLogger(__name__)


class PrecedentCollector:
    """Accumulates detail results and turns them into the final CrawlResult.

    Results arrive in completion order; each carries the position its link was
    discovered at, and result() puts them back in discovery order.
    """

    def __init__(self, start_date: date, end_date: date):
        if start_date > end_date:
            raise ValueError(f"start date {start_date} is after end date {end_date}")
        self.start_date = start_date
        self.end_date = end_date
        self.fatal: Optional[ListingFetchError] = None
        self.out_of_range = 0
        self._results: Dict[int, DetailResult] = {}

    def in_range(self, record: PrecedentRecord):
        return self.start_date <= record.date.to_date() <= self.end_date

    def add(self, result: DetailResult):
        """Store one result; returns False when it was discarded."""
        if result.position in self._results:
            logger.warning("Position %d already collected, ignoring %s", result.position, result.url)
            return False
        if result.ok and not self.in_range(result.outcome):
            self.out_of_range += 1
            logger.debug("Discarding %s dated %s, outside %s..%s",
                         result.url, result.outcome.date, self.start_date, self.end_date)
            return False
        self._results[result.position] = result
        return True

    def fail(self, error: ListingFetchError):
        if self.fatal is None:
            self.fatal = error

    def result(self) -> CrawlResult:
        if self.fatal is not None:
            raise self.fatal

        records = []
        errors = []
        seen = set()
        duplicates = 0
        for position in sorted(self._results):
            item = self._results[position]
            if not item.ok:
                errors.append((item.url, item.outcome))
                continue
            record = item.outcome
            if record.lawsuit_id in seen:
                duplicates += 1
                continue
            seen.add(record.lawsuit_id)
            records.append(record)

        if duplicates:
            logger.info("Dropped %d duplicate precedents", duplicates)
        return CrawlResult(tuple(records), tuple(errors))


class PrecedentCollectorPipeline:
    def __init__(self, crawler):
        self.crawler = crawler
        self.stats = crawler.stats
        self.collector = None

    @classmethod
    def from_crawler(cls, crawler):
        return cls(crawler)

    def open_spider(self, spider=None):
        self.collector = (spider or self.crawler.spider).collector

    def process_item(self, item, spider=None):
        if not isinstance(item, DetailResult):
            return item
        kept = self.collector.add(item)
        if not item.ok:
            self.stats.inc_value("precedents/detail_failed")
            self.stats.inc_value(f"precedents/detail_failed/{item.outcome.kind.value}")
        elif kept:
            self.stats.inc_value("precedents/records")
        else:
            self.stats.inc_value("precedents/records_out_of_range")
        return item
