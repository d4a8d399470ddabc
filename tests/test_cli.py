"""
Tests for the command-line interface.
"""
import json
from unittest import mock

import pytest

from depthcrawler import cli
from depthcrawler.core import CrawlResult, CrawlStats, Outcome, TaskResult

SEED = "http://example.test/"


def fake_result():
    visited = [SEED, SEED + "a"]
    root = TaskResult(SEED, 5, Outcome.EXPANDED, resolved_url=SEED)
    stats = CrawlStats(pages_recorded=2, pages_fetched=2, external_links=1)
    stats.error_counts["404"] += 1
    return CrawlResult(seed_url=SEED, visited=visited, root=root, stats=stats)


@pytest.fixture
def crawl():
    with mock.patch("depthcrawler.cli.crawl", return_value=fake_result()) as patched:
        yield patched


@pytest.fixture(autouse=True)
def no_logging_setup():
    with mock.patch("depthcrawler.cli.configure_logging") as patched:
        yield patched


def test_stdout_output(crawl, capsys):
    assert cli.main([SEED, "--out", "-"]) == 0

    out, err = capsys.readouterr()
    assert json.loads(out) == {SEED: True, SEED + "a": True}
    assert "Crawled URLs:" in err


def test_options_passed_through(crawl):
    cli.main([
        SEED, "--out", "-",
        "--max-depth", "3",
        "--max-in-flight", "4",
        "--max-pages", "100",
        "--allow-subdomains",
        "--timeout", "2.5",
        "--user-agent", "UA/9",
    ])
    crawl.assert_called_once_with(
        start_url=SEED,
        max_depth=3,
        max_in_flight=4,
        max_pages=100,
        allow_subdomains=True,
        timeout_s=2.5,
        user_agent="UA/9",
    )


def test_defaults(crawl):
    cli.main([SEED, "--out", "-"])
    kwargs = crawl.call_args.kwargs
    assert kwargs["max_depth"] == 5
    assert kwargs["max_pages"] is None
    assert kwargs["allow_subdomains"] is False


def test_pretty_output(crawl, capsys):
    cli.main([SEED, "--out", "-", "--pretty"])
    out, _ = capsys.readouterr()
    assert out.startswith("{\n  ")


def test_output_file(crawl, tmp_path):
    out_file = tmp_path / "nested" / "result.json"
    assert cli.main([SEED, "--out", str(out_file)]) == 0
    assert json.loads(out_file.read_text(encoding="utf-8")) == {SEED: True, SEED + "a": True}


def test_default_output_path(crawl, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert cli.main([SEED]) == 0

    written = list((tmp_path / "crawls").glob("example_test_*.json"))
    assert len(written) == 1


def test_verbose_prints_summary(crawl, capsys):
    cli.main([SEED, "--out", "-", "--verbose"])
    _, err = capsys.readouterr()
    assert "CRAWL SUMMARY" in err
    assert "URLs recorded:          2" in err
    assert "HTTP 404: 1" in err


def test_invalid_start_url_exit_code(capsys):
    with mock.patch("depthcrawler.cli.crawl", side_effect=ValueError("Invalid start URL: nope")):
        assert cli.main(["nope", "--out", "-"]) == 2
    _, err = capsys.readouterr()
    assert "Invalid start URL: nope" in err


def test_verbose_and_quiet_exclusive():
    with pytest.raises(SystemExit):
        cli.main([SEED, "--verbose", "--quiet"])


def test_logging_levels(no_logging_setup, crawl):
    cli.main([SEED, "--out", "-", "--quiet"])
    no_logging_setup.assert_called_once_with(False, True)
