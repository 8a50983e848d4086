# Scrapy settings for precedent_crawler
#
# Values can be overridden with PRECEDENT_* environment variables or by the
# settings passed to precedent_crawler.coordinator.run().
#
#     https://docs.scrapy.org/en/latest/topics/settings.html
import os

BOT_NAME = "precedent_crawler"

SPIDER_MODULES = ["precedent_crawler.spiders"]
NEWSPIDER_MODULE = "precedent_crawler.spiders"

PRECEDENT_BASE_URL = os.getenv("PRECEDENT_BASE_URL", "https://www.courts.go.jp")

USER_AGENT = os.getenv(
    "PRECEDENT_USER_AGENT",
    "precedent_crawler (+https://www.courts.go.jp/app/hanrei_jp/search1)",
)

ROBOTSTXT_OBEY = True

# At most this many requests in flight; run() overrides it with its
# concurrency_limit argument
CONCURRENT_REQUESTS = int(os.getenv("PRECEDENT_CONCURRENCY", "8"))
CONCURRENT_REQUESTS_PER_DOMAIN = CONCURRENT_REQUESTS
DOWNLOAD_TIMEOUT = int(os.getenv("PRECEDENT_DOWNLOAD_TIMEOUT", "60"))

# 3 attempts in total; 429 and 5xx are retried, any other 4xx is final
RETRY_ENABLED = True
RETRY_TIMES = 2
RETRY_HTTP_CODES = [429] + list(range(500, 600))
RETRY_BACKOFF_BASE = 0.5
RETRY_BACKOFF_MAX = 8.0

DOWNLOADER_MIDDLEWARES = {
    "scrapy.downloadermiddlewares.retry.RetryMiddleware": None,
    "precedent_crawler.middlewares.BackoffRetryMiddleware": 550,
}

ITEM_PIPELINES = {
    "precedent_crawler.pipelines.PrecedentCollectorPipeline": 300,
}

LOG_LEVEL = os.getenv("PRECEDENT_LOGLEVEL", "INFO")
