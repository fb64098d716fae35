# tests/test_cli.py
import pytest
import yaml

import cli

from conftest import links_page

LTC_URL = "https://www.pa.gov/agencies/dhs/resources/ltc.html"
MEMO_URL = "http://services.dpw.state.pa.us/oimpolicymanuals/ma/300_Operations_Memoranda.htm"


@pytest.fixture
def config_file(tmp_path):
    config = {
        "database": {"path": str(tmp_path / "monitors.db")},
        "logging": {"level": "WARNING", "console": False},
        "scraper": {"retry_delay": 0},
        "monitors": [
            {"source_name": "LTC resources", "source_url": LTC_URL,
             "source_type": "dhs_page", "check_frequency": "weekly"},
            {"source_name": "Ops memos", "source_url": MEMO_URL,
             "source_type": "oim_ops_memo", "check_frequency": "monthly"},
        ],
    }
    path = tmp_path / "monitor.yaml"
    path.write_text(yaml.safe_dump(config), encoding="utf-8")
    return str(path)


@pytest.fixture
def run_cli(config_file, fake_http, monkeypatch):
    monkeypatch.setattr(cli, "RequestManager", lambda config: fake_http)

    def _run(*args):
        return cli.main_cli(["--config", config_file, *args])
    return _run


def test_seed_is_idempotent(run_cli, capsys):
    assert run_cli("seed") == 0
    assert "Seeded 2 new monitor(s)." in capsys.readouterr().out

    assert run_cli("seed") == 0
    assert "Seeded 0 new monitor(s)." in capsys.readouterr().out


def test_status_and_list(run_cli, capsys):
    run_cli("seed")
    capsys.readouterr()

    assert run_cli("status") == 0
    out = capsys.readouterr().out
    assert "Total monitors: 2" in out
    assert "Weekly: 1" in out
    assert "Monthly: 1" in out

    assert run_cli("list", "--frequency", "weekly") == 0
    out = capsys.readouterr().out
    assert "LTC resources" in out
    assert "Ops memos" not in out
    assert "Last checked: Never" in out


def test_check_then_changes(run_cli, fake_http, capsys):
    run_cli("seed")
    fake_http.pages[LTC_URL] = links_page(("/docs/a.pdf", "Asset Limits"))
    fake_http.pages[MEMO_URL] = links_page(("25-06-01.htm", "25-06-01 Renewals"))
    capsys.readouterr()

    assert run_cli("check", "--force") == 0
    out = capsys.readouterr().out
    assert "Sources checked: 2" in out
    assert "Changes detected: 2" in out
    assert "- Asset Limits" in out

    assert run_cli("changes", "--limit", "5") == 0
    out = capsys.readouterr().out
    assert "[skipped] LTC resources" in out
    assert "[skipped] Ops memos" in out


def test_check_reports_fetch_errors_and_still_succeeds(run_cli, fake_http, capsys):
    from source_monitor.exceptions import FetchError

    run_cli("seed")
    fake_http.pages[LTC_URL] = FetchError("HTTP error 404", status_code=404, url=LTC_URL)
    capsys.readouterr()

    assert run_cli("check", "--source", "LTC resources") == 0
    out = capsys.readouterr().out
    assert "Sources checked: 0" in out
    assert "ERROR: HTTP error 404" in out


def test_enable_and_disable(run_cli, capsys):
    run_cli("seed")

    assert run_cli("disable", "Ops memos") == 0
    assert run_cli("enable", "Nobody") == 1
    capsys.readouterr()

    run_cli("list")
    assert "Ops memos" not in capsys.readouterr().out


def test_test_scrape_prints_items_without_a_database(run_cli, fake_http, capsys, tmp_path):
    fake_http.pages[MEMO_URL] = links_page(("25-06-01.htm", "25-06-01 Renewals"))

    assert run_cli("test-scrape", MEMO_URL) == 0
    out = capsys.readouterr().out
    assert "Items found: 1" in out
    assert "25-06-01 Renewals" in out
    assert "Date: 2025-06-01" in out
    assert not (tmp_path / "monitors.db").exists()


def test_test_scrape_unknown_type_fails(run_cli):
    assert run_cli("test-scrape", MEMO_URL, "--type", "rss") == 1


def test_db_health(run_cli, capsys):
    assert run_cli("db-health") == 0
    assert "PASSED" in capsys.readouterr().out


def test_missing_config_file_fails(tmp_path):
    assert cli.main_cli(["--config", str(tmp_path / "absent.yaml"), "status"]) == 1


def test_command_is_required():
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args([])


def test_unknown_command_exits_with_one(config_file):
    assert cli.main_cli(["--config", config_file, "bogus-command"]) == 1
    assert cli.main_cli([]) == 1


def test_invalid_frequency_exits_with_one(run_cli):
    assert run_cli("check", "--frequency", "bogus") == 1


def test_help_exits_with_zero(capsys):
    assert cli.main_cli(["--help"]) == 0
    assert "test-scrape" in capsys.readouterr().out
