import logging
from datetime import date
from typing import Any, Dict, Optional

from scrapy import signals
from scrapy.crawler import CrawlerProcess
from scrapy.settings import Settings

from precedent_crawler import settings as project_settings
from precedent_crawler.errors import CrawlAborted
from precedent_crawler.items import CrawlResult
from precedent_crawler.pipelines import PrecedentCollector
from precedent_crawler.spiders.precedents import PrecedentSpider

logger = logging.getLogger(__name__)


def build_settings(concurrency_limit: Optional[int] = None, overrides: Optional[Dict[str, Any]] = None) -> Settings:
    s = Settings()
    s.setmodule(project_settings, priority="project")
    if overrides:
        s.setdict(overrides, priority="cmdline")
    if concurrency_limit is not None:
        if concurrency_limit < 1:
            raise ValueError(f"concurrency_limit must be at least 1, got {concurrency_limit}")
        s.set("CONCURRENT_REQUESTS", concurrency_limit, priority="cmdline")
        s.set("CONCURRENT_REQUESTS_PER_DOMAIN", concurrency_limit, priority="cmdline")
    return s


def run(start_date: date, end_date: date, concurrency_limit: Optional[int] = None,
        settings: Optional[Dict[str, Any]] = None) -> CrawlResult:
    """Crawl every precedent decided between start_date and end_date (inclusive).

    Returns the records in the order their links were discovered together
    with the (url, FetchError) pairs of detail pages that could not be turned
    into a record. Raises ListingFetchError when a listing page could not be
    fetched and CrawlAborted when the crawl was stopped early; no partial
    result is returned in either case.

    Runs the Twisted reactor, so it can only be called once per process.
    """
    if start_date > end_date:
        raise ValueError(f"start date {start_date} is after end date {end_date}")

    collector = PrecedentCollector(start_date, end_date)
    process = CrawlerProcess(build_settings(concurrency_limit, settings))
    crawler = process.create_crawler(PrecedentSpider)

    close_reasons = []

    def on_spider_closed(spider, reason):
        close_reasons.append(reason)

    crawler.signals.connect(on_spider_closed, signal=signals.spider_closed)
    process.crawl(crawler, start_date=start_date, end_date=end_date, collector=collector)
    process.start()

    reason = close_reasons[0] if close_reasons else "unknown"
    if collector.fatal is None and reason != "finished":
        raise CrawlAborted(reason)

    # raises the ListingFetchError recorded by a failed listing walk
    result = collector.result()
    logger.info("Collected %d precedents, %d failed detail pages, %d outside the date range",
                len(result.records), len(result.errors), collector.out_of_range)
    return result
