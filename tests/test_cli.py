"""
Tests for the command-line entry point (no browser is launched).
"""

import pytest

from video_harvester import __main__ as cli
from video_harvester.models import FailureReason, RunOutcome, RunStatus


class FakeOrchestrator:
    """Stands in for SessionOrchestrator and records what it was asked."""

    instances = []

    def __init__(self, config, auth_handler=None):
        self.config = config
        self.calls = []
        FakeOrchestrator.instances.append(self)

    def run_module_scrape_sync(self, credentials, addresses):
        self.calls.append(("module", credentials, addresses))
        return RunOutcome(links=["https://www.youtube.com/watch?v=aaa111"], addresses=addresses)

    def run_single_content_scrape_sync(self, credentials, address):
        self.calls.append(("single", credentials, address))
        return RunOutcome(status=RunStatus.FAILED, reason=FailureReason.AUTHENTICATION, addresses=[address])


@pytest.fixture
def fake_orchestrator(monkeypatch):
    FakeOrchestrator.instances = []
    monkeypatch.setattr(cli, "SessionOrchestrator", FakeOrchestrator)
    for name in ("BRIGHTSPACE_EMAIL", "BRIGHTSPACE_PASSWORD", "HARVESTER_EMAIL", "HARVESTER_PASSWORD"):
        monkeypatch.delenv(name, raising=False)
    return FakeOrchestrator


class TestParser:

    def test_requires_an_address(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])

    def test_flags(self):
        args = cli.build_parser().parse_args(
            ["https://a", "https://b", "--headed", "--timeout-scale", "1.5", "--max-pages", "3"]
        )
        assert args.urls == ["https://a", "https://b"]
        assert args.headed and args.timeout_scale == 1.5 and args.max_pages == 3


class TestRun:

    def test_module_scrape_with_flag_credentials(self, fake_orchestrator, capsys):
        code = cli.run_cli_with_args([
            "school.brightspace.com/d2l/le/content/1", "--email", "s@school.edu", "--password", "pw",
            "--output-dir", "out",
        ])
        assert code == 0
        kind, creds, addresses = fake_orchestrator.instances[0].calls[0]
        assert kind == "module"
        assert creds.is_complete
        assert addresses == ["https://school.brightspace.com/d2l/le/content/1"]
        assert fake_orchestrator.instances[0].config.output_dir == "out"
        assert "HARVEST COMPLETE" in capsys.readouterr().out

    def test_share_links_skip_credentials(self, fake_orchestrator):
        cli.run_cli_with_args(["https://rise.articulate.com/share/abc"])
        _, creds, _ = fake_orchestrator.instances[0].calls[0]
        assert creds is None

    def test_single_failure_exit_code(self, fake_orchestrator, capsys):
        code = cli.run_cli_with_args([
            "https://school.brightspace.com/d2l/x", "--single", "--email", "s@school.edu", "--password", "pw",
        ])
        assert code == 1
        assert fake_orchestrator.instances[0].calls[0][0] == "single"
        out = capsys.readouterr().out
        assert "HARVEST FAILED" in out
        assert "authentication" in out

    def test_bad_timeout_scale(self, fake_orchestrator):
        assert cli.run_cli_with_args(["https://a.example", "--timeout-scale", "0"]) == 2

    def test_zero_max_pages(self, fake_orchestrator):
        assert cli.run_cli_with_args(["https://a.example", "--max-pages", "0"]) == 2
