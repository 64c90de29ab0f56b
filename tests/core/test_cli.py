# tests/core/test_cli.py
import json

import pytest
from aioresponses import aioresponses

from wsg_check.core.cli import EXIT_FAILURE, EXIT_OK, EXIT_USAGE, build_parser, main

PAGE = "https://example.com/"
ROBOTS = "https://example.com/robots.txt"
GREENCHECK = "https://api.thegreenwebfoundation.org/api/v3/greencheck/example.com"


@pytest.fixture
def site(good_html, tmp_path, monkeypatch):
    """Mocks the page, its robots.txt and the greencheck API; runs from a clean directory."""
    monkeypatch.chdir(tmp_path)
    for name in ("WSG_FORMAT", "WSG_CATEGORIES", "WSG_GUIDELINES", "WSG_FAIL_THRESHOLD", "WSG_IGNORE_ROBOTS"):
        monkeypatch.delenv(name, raising=False)

    with aioresponses() as m:
        m.get(ROBOTS, status=404)
        m.get(PAGE, status=200, body=good_html, content_type="text/html", headers={"Content-Encoding": "br"})
        m.get(GREENCHECK, payload={"green": True})
        yield m


def test_parser_maps_negative_flags_to_none_when_absent():
    args = build_parser().parse_args([PAGE])
    assert args.ignore_robots is None
    assert args.follow_redirects is None

    args = build_parser().parse_args([PAGE, "--no-follow-redirects", "--ignore-robots"])
    assert args.follow_redirects is False
    assert args.ignore_robots is True


def test_help_exits_cleanly(capsys):
    assert main(["--help"]) == EXIT_OK
    assert "wsg-check" in capsys.readouterr().out


def test_missing_url_is_a_usage_error(capsys):
    assert main([]) == EXIT_USAGE


def test_unknown_category_is_a_usage_error(capsys):
    assert main([PAGE, "-c", "ux,marketing"]) == EXIT_USAGE
    assert "Invalid configuration" in capsys.readouterr().err


def test_json_report_written_to_file(site, tmp_path, capsys):
    report_path = tmp_path / "report.json"

    code = main([PAGE, "-f", "json", "-o", str(report_path), "--no-progress"])

    assert code == EXIT_OK
    data = json.loads(report_path.read_text(encoding="utf-8"))
    assert data["url"] == PAGE
    assert data["is_green_hosted"] is True
    assert len(data["results"]) == 24
    assert "Report written to" in capsys.readouterr().err


def test_terminal_report_on_stdout_for_selected_guidelines(site, capsys):
    code = main([PAGE, "-g", "4.3", "--no-progress"])

    out = capsys.readouterr().out
    assert code == EXIT_OK
    assert "Overall score:" in out
    assert "[PASS] 4.3" in out


def test_score_below_fail_threshold_exits_with_failure(site, capsys):
    code = main([PAGE, "-f", "json", "--fail-threshold", "100", "--no-progress"])

    assert code == EXIT_FAILURE
    assert "below fail-threshold 100" in capsys.readouterr().err


def test_unfetchable_url_exits_with_failure(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)

    code = main(["ftp://example.com/file", "--no-progress"])

    assert code == EXIT_FAILURE
    assert "Error (fetching)" in capsys.readouterr().err


def test_markdown_report_on_stdout(site, capsys):
    code = main([PAGE, "-f", "markdown", "-g", "4.3", "--no-progress"])

    out = capsys.readouterr().out
    assert code == EXIT_OK
    assert out.startswith("# WSG Sustainability Report")
    assert "| 4.3 | Compress Your Files | PASS |" in out
