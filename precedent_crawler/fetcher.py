import logging
from typing import Callable, Optional

import scrapy
from bs4 import BeautifulSoup
from scrapy.http import TextResponse
from scrapy.spidermiddlewares.httperror import HttpError

from precedent_crawler.errors import (
    DateMismatch,
    EraCalendarError,
    FetchError,
    MalformedDetailPage,
    PartialExtractionFailure,
)
from precedent_crawler.extractor import FieldExtractor
from precedent_crawler.items import DetailResult
from precedent_crawler.paginator import ListingEntry

logger = logging.getLogger(__name__)


def classify_failure(failure) -> FetchError:
    """Turn a request errback failure into a FetchError.

    Retries have already happened in BackoffRetryMiddleware by the time a
    failure reaches an errback.
    """
    if failure.check(HttpError):
        return FetchError.http_status(failure.value.response.status)
    exc = failure.value
    return FetchError.network(f"{type(exc).__name__}: {failure.getErrorMessage()}")


class DetailFetcher:
    def __init__(self, extractor: Optional[FieldExtractor] = None,
                 callback: Optional[Callable] = None, errback: Optional[Callable] = None):
        self.extractor = extractor or FieldExtractor()
        self.callback = callback
        self.errback = errback

    def request(self, entry: ListingEntry) -> scrapy.Request:
        return scrapy.Request(
            entry.url,
            callback=self.callback,
            errback=self.errback,
            cb_kwargs={"entry": entry},
        )

    def parse(self, response, entry: ListingEntry) -> DetailResult:
        if not isinstance(response, TextResponse):
            error = FetchError.parse_failure(f"not an HTML page ({response.headers.get('Content-Type', b'').decode('latin-1')})")
            return DetailResult(entry.position, entry.url, error)

        document = BeautifulSoup(response.text, "html.parser")
        try:
            record = self.extractor.extract(document, entry.url)
            if entry.listed_date is not None and entry.listed_date != record.date:
                raise DateMismatch("date", entry.listed_date, record.date)
        except PartialExtractionFailure as e:
            logger.warning("Incomplete detail page %s: %s", entry.url, e)
            return DetailResult(entry.position, entry.url, FetchError.partial_extraction(e))
        except (DateMismatch, EraCalendarError, MalformedDetailPage) as e:
            logger.warning("Unparseable detail page %s: %s", entry.url, e)
            return DetailResult(entry.position, entry.url, FetchError.parse_failure(str(e)))
        return DetailResult(entry.position, entry.url, record)

    def failed(self, failure) -> DetailResult:
        entry = failure.request.cb_kwargs["entry"]
        error = classify_failure(failure)
        logger.warning("Detail request failed for %s: %s", entry.url, error.message)
        return DetailResult(entry.position, entry.url, error)
