import asyncio
from datetime import date

import pytest
from scrapy.http import HtmlResponse, Request
from scrapy.utils.test import get_crawler

from precedent_crawler.era import parse_era_date
from precedent_crawler.paginator import ListingEntry
from precedent_crawler.spiders.precedents import PrecedentSpider

BASE = "https://www.courts.go.jp"
START = date(2022, 1, 12)
END = date(2023, 12, 1)

DEFAULT_FIELDS = {
    "事件番号": "<p>令和3(受)1234</p>",
    "事件名": "<p>損害賠償請求事件</p>",
    "裁判年月日": "<p>令和4年3月10日</p>",
    "法廷名": "<p>最高裁判所第一小法廷</p>",
    "裁判種別": "<p>判決</p>",
    "結果": "<p>棄却</p>",
    "判例集等巻・号・頁": "<p>民集　第76巻3号</p>",
    "全文": '<ul><li><a href="/assets/hanrei/hanrei-pdf-91536.pdf">全文</a></li></ul>',
}


def detail_html(fields=None, **replace):
    """Build a detail page. ``replace`` maps labels to new <dd> markup, None drops the row."""
    rows = dict(DEFAULT_FIELDS if fields is None else fields)
    for label, value in replace.items():
        if value is None:
            rows.pop(label, None)
        else:
            rows[label] = value
    dls = "".join(f"<dl><dt>{label}</dt><dd>{value}</dd></dl>" for label, value in rows.items())
    return (
        "<html><body><h1>裁判例結果詳細</h1>"
        f'<div class="module-search-page-table-parts-result-detail">{dls}</div>'
        "</body></html>"
    )


def listing_html(rows, paging="64297件中1～10件を表示"):
    """rows: (href, date text) pairs."""
    trs = "".join(
        f'<tr><th><a href="{href}">令和3(受)1234</a></th><td>{when}</td><td>最高裁判所</td></tr>'
        for href, when in rows
    )
    paging_html = f'<div class="module-search-page-paging-parts2"><p>{paging}</p></div>' if paging else ""
    return f"<html><body>{paging_html}<table><thead><tr><th>事件</th></tr></thead><tbody>{trs}</tbody></table></body></html>"


def html_response(url, body, request=None):
    request = request or Request(url)
    return HtmlResponse(url=url, body=body.encode("utf-8"), encoding="utf-8", request=request)


def entry(position, lawsuit_id="91536", page=2, listed=None):
    listed_date = parse_era_date(listed) if listed else None
    return ListingEntry(position, f"{BASE}/app/hanrei_jp/detail{page}?id={lawsuit_id}", listed_date)


@pytest.fixture
def crawler():
    return get_crawler(PrecedentSpider)


def start_requests(spider):
    """Drain the spider's async start() outside the engine."""
    async def collect():
        return [request async for request in spider.start()]
    return asyncio.run(collect())


@pytest.fixture
def spider(crawler):
    spider = PrecedentSpider.from_crawler(crawler, start_date="2022/01/12", end_date="2023/12/01")
    crawler.spider = spider
    return spider
