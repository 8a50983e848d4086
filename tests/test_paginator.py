from urllib.parse import parse_qs, urlparse

import pytest

from precedent_crawler.items import Era
from precedent_crawler.paginator import LISTING_PRIORITY, ListingPaginator

from tests.conftest import BASE, END, START, html_response, listing_html

ROWS_PAGE_1 = [
    ("/app/hanrei_jp/detail2?id=91536", "令和4年3月10日"),
    ("/app/hanrei_jp/detail4?id=91676", "令和5年11月30日"),
    ("/app/hanrei_jp/detail3?id=91553", "令和6年1月2日"),
]
ROWS_PAGE_2 = [
    ("/app/hanrei_jp/detail7?id=91661", "令和4年1月12日"),
    ("/app/hanrei_jp/detail5?id=91434", ""),
]


def walk():
    paginator = ListingPaginator(START, END, BASE)
    return paginator, paginator.first_request()


def test_query_scopes_the_date_window():
    paginator = ListingPaginator(START, END, BASE)
    url = paginator.page_url(3)
    assert url.startswith(f"{BASE}/app/hanrei_jp/list1?")
    query = parse_qs(urlparse(url).query)
    assert query["page"] == ["3"]
    assert query["filter[judgeDateMode]"] == ["2"]
    assert query["filter[judgeGengoFrom]"] == [Era.REIWA.glyph]
    assert query["filter[judgeYearFrom]"] == ["4"]
    assert query["filter[judgeMonthFrom]"] == ["1"]
    assert query["filter[judgeDayFrom]"] == ["12"]
    assert query["filter[judgeYearTo]"] == ["5"]
    assert query["filter[judgeMonthTo]"] == ["12"]
    assert query["filter[judgeDayTo]"] == ["1"]
    assert "filter%5BjudgeGengoFrom%5D=%E4%BB%A4%E5%92%8C" in url


def test_rejects_inverted_window():
    with pytest.raises(ValueError):
        ListingPaginator(END, START)


def test_cannot_restart():
    paginator, first = walk()
    assert first.meta["listing_page"] == 1
    assert first.priority == LISTING_PRIORITY
    with pytest.raises(RuntimeError):
        paginator.first_request()


def test_reads_links_in_order_and_filters_rows_outside_the_window():
    paginator, first = walk()
    page = paginator.read_page(html_response(first.url, listing_html(ROWS_PAGE_1), first))

    assert page.page == 1
    assert [e.url for e in page.entries] == [
        f"{BASE}/app/hanrei_jp/detail2?id=91536",
        f"{BASE}/app/hanrei_jp/detail4?id=91676",
    ]
    assert [e.position for e in page.entries] == [0, 1]
    assert page.entries[0].listed_date.year == 2022
    assert page.skipped == 1

    nxt = page.next_request
    assert nxt is not None
    assert nxt.meta["listing_page"] == 2
    assert parse_qs(urlparse(nxt.url).query)["page"] == ["2"]


def test_positions_continue_across_pages():
    paginator, first = walk()
    page1 = paginator.read_page(html_response(first.url, listing_html(ROWS_PAGE_1), first))
    second = page1.next_request
    page2 = paginator.read_page(html_response(second.url, listing_html(ROWS_PAGE_2, "25件中11～20件を表示"), second))

    assert [e.position for e in page2.entries] == [2, 3]
    # a row without a readable date is kept; the detail page decides
    assert page2.entries[1].listed_date is None


def test_stops_on_empty_page():
    paginator, first = walk()
    page = paginator.read_page(html_response(first.url, listing_html([], paging=None), first))
    assert page.entries == ()
    assert page.next_request is None
    assert paginator.exhausted
    with pytest.raises(RuntimeError):
        paginator.read_page(html_response(first.url, listing_html(ROWS_PAGE_1), first))


def test_stops_when_a_page_repeats():
    paginator, first = walk()
    second = paginator.read_page(html_response(first.url, listing_html(ROWS_PAGE_1), first)).next_request
    repeated = paginator.read_page(html_response(second.url, listing_html(ROWS_PAGE_1), second))
    assert repeated.entries == ()
    assert repeated.next_request is None
    assert paginator.exhausted


def test_stops_after_the_reported_total():
    paginator, first = walk()
    page = paginator.read_page(html_response(first.url, listing_html(ROWS_PAGE_2, "2件中1～2件を表示"), first))
    assert len(page.entries) == 2
    assert page.next_request is None


def test_row_date_comes_from_the_date_cell_only():
    paginator, first = walk()
    body = (
        "<html><body><table><tbody>"
        '<tr><th><a href="/app/hanrei_jp/detail5?id=91700">令和3(行ウ)12</a></th>'
        "<td>平成30年4月1日付け処分取消請求事件</td><td>令和4年3月10日</td></tr>"
        '<tr><th><a href="/app/hanrei_jp/detail5?id=91701">令和3(行ウ)13</a></th>'
        "<td>裁判年月日：令和６年１月２日</td></tr>"
        '<tr><th><a href="/app/hanrei_jp/detail5?id=91702">令和3(行ウ)14</a></th>'
        "<td>令和4年3月10日</td><td>令和6年1月2日</td></tr>"
        "</tbody></table></body></html>"
    )
    page = paginator.read_page(html_response(first.url, body, first))

    assert [e.url.rsplit("=", 1)[1] for e in page.entries] == ["91700", "91702"]
    assert str(page.entries[0].listed_date).startswith("令和4年3月10日")
    # two dated cells: left for the detail page to settle
    assert page.entries[1].listed_date is None
    assert page.skipped == 1
