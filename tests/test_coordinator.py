from datetime import date

import pytest

from precedent_crawler import cli
from precedent_crawler.coordinator import build_settings, run
from precedent_crawler.errors import FetchError, ListingFetchError
from precedent_crawler.items import CrawlResult


def test_build_settings_applies_the_concurrency_limit():
    s = build_settings(3, {"LOG_LEVEL": "DEBUG"})
    assert s.getint("CONCURRENT_REQUESTS") == 3
    assert s.getint("CONCURRENT_REQUESTS_PER_DOMAIN") == 3
    assert s.get("LOG_LEVEL") == "DEBUG"
    assert s.getint("RETRY_TIMES") == 2
    assert "precedent_crawler.middlewares.BackoffRetryMiddleware" in s.getdict("DOWNLOADER_MIDDLEWARES")


def test_build_settings_rejects_zero_concurrency():
    with pytest.raises(ValueError):
        build_settings(0)


def test_run_rejects_inverted_window():
    with pytest.raises(ValueError):
        run(date(2023, 12, 1), date(2022, 1, 12), 2)


def test_cli_writes_records_and_errors(tmp_path, monkeypatch):
    monkeypatch.delenv("PRECEDENT_LOGLEVEL", raising=False)
    calls = []

    def fake_run(start, end, concurrency, settings=None):
        calls.append((start, end, concurrency, settings))
        return CrawlResult((), (("https://www.courts.go.jp/app/hanrei_jp/detail2?id=1", FetchError.http_status(404)),))

    monkeypatch.setattr(cli, "run", fake_run)
    out = tmp_path / "out" / "precedents.json"
    errors = tmp_path / "errors.json"

    code = cli.main(["-o", str(out), "-s", "2022/01/12", "-e", "2023/12/01", "-c", "4", "--errors", str(errors)])

    assert code == 0
    assert calls == [(date(2022, 1, 12), date(2023, 12, 1), 4, {"LOG_LEVEL": "INFO"})]
    assert out.read_text(encoding="utf-8").strip() == "[]"
    assert '"status": 404' in errors.read_text(encoding="utf-8")


def test_cli_reports_fatal_listing_failure(tmp_path, monkeypatch, capsys):
    def fake_run(*args, **kwargs):
        raise ListingFetchError("https://www.courts.go.jp/app/hanrei_jp/list1?page=3", FetchError.http_status(500))

    monkeypatch.setattr(cli, "run", fake_run)
    out = tmp_path / "out.json"

    assert cli.main(["-o", str(out), "-s", "2022/01/12", "-e", "2023/12/01"]) == 1
    assert "list1?page=3" in capsys.readouterr().err
    assert not out.exists()


def test_cli_rejects_bad_dates(tmp_path):
    assert cli.main(["-o", str(tmp_path / "x.json"), "-s", "2022/13/01", "-e", "2023/12/01"]) == 2
    assert cli.main(["-o", str(tmp_path / "x.json"), "-s", "2023/12/01", "-e", "2022/01/12"]) == 2
