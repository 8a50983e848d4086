# Define here the models for your downloader middleware
#
# See documentation in:
# https://docs.scrapy.org/en/latest/topics/downloader-middleware.html
import logging
import random

from scrapy.downloadermiddlewares.retry import RetryMiddleware
from scrapy.utils.defer import maybe_deferred_to_future
from twisted.internet.task import deferLater

logger = logging.getLogger(__name__)


class BackoffRetryMiddleware(RetryMiddleware):
    """RetryMiddleware that waits before sending a retried request.

    The wait is drawn with full jitter: uniform(0, min(max, base * 2 ** (n - 1)))
    seconds for the n-th retry. Which responses and exceptions are retried is
    left to RetryMiddleware (RETRY_HTTP_CODES, RETRY_EXCEPTIONS, RETRY_TIMES).
    """

    backoff_base = 0.5
    backoff_max = 8.0

    @classmethod
    def from_crawler(cls, crawler):
        mw = super().from_crawler(crawler)
        mw.backoff_base = crawler.settings.getfloat("RETRY_BACKOFF_BASE", cls.backoff_base)
        mw.backoff_max = crawler.settings.getfloat("RETRY_BACKOFF_MAX", cls.backoff_max)
        return mw

    def backoff_delay(self, retry_times: int):
        if retry_times <= 0:
            return 0.0
        ceiling = min(self.backoff_max, self.backoff_base * (2 ** (retry_times - 1)))
        return random.uniform(0, ceiling)

    async def process_request(self, request, spider=None):
        delay = self.backoff_delay(request.meta.get("retry_times", 0))
        if delay > 0:
            from twisted.internet import reactor

            logger.debug("Backing off %.2fs before retrying %s", delay, request.url)
            await maybe_deferred_to_future(deferLater(reactor, delay, lambda: None))
        return None
