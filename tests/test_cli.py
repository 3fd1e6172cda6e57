"""Tests for the command line interface."""

import json

import pytest
import typer
from typer.testing import CliRunner

from conftest import build_identity, build_inputs
from memboard import __version__, cli
from memboard.adapters.base import SubjectNotResolvedError
from memboard.models.schemas import FreshnessTimestamp, WalletActivity

runner = CliRunner()

WALLET = "0x" + "a" * 40


class FakeEns:
    async def require_address(self, subject):
        raise SubjectNotResolvedError(subject)


class FakePipeline:
    def __init__(self, *args, **kwargs):
        self.ens = FakeEns()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        pass

    async def gather_inputs(self, wallet_or_ens, profile=None):
        return build_inputs(
            [
                build_identity("twitter", "alice", followers=1500, verified=True),
                build_identity("farcaster", "alice", followers=400, verified=True),
            ],
            wallet_activity=WalletActivity(age_days=365, tx_count=120),
        )

    async def resolve_freshness(self, wallet_or_ens, inputs=None):
        return FreshnessTimestamp()

    async def discover_candidates(self, wallet_or_ens, profile=None):
        return ["0x" + "1" * 40]


@pytest.fixture
def fake_pipeline(monkeypatch):
    monkeypatch.setattr(cli, "ScoringPipeline", FakePipeline)


class TestParseWeights:
    def test_parses_pairs(self):
        assert cli.parse_weights("identity=0.4, wallet=0.3") == {"identity": 0.4, "wallet": 0.3}

    def test_empty(self):
        assert cli.parse_weights(None) is None
        assert cli.parse_weights("") is None

    def test_malformed(self):
        with pytest.raises(typer.BadParameter):
            cli.parse_weights("identity")
        with pytest.raises(typer.BadParameter):
            cli.parse_weights("identity=high")


class TestCommands:
    def test_version(self):
        result = runner.invoke(cli.app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_score(self, fake_pipeline, tmp_path):
        output = tmp_path / "score.json"
        result = runner.invoke(cli.app, ["score", WALLET, "--output", str(output)])

        assert result.exit_code == 0, result.output
        assert "Score Breakdown" in result.output
        data = json.loads(output.read_text())
        assert data["subject"] == WALLET
        assert 0 <= data["score"] <= 100
        assert data["tier"]["tier"]["id"]
        assert len(data["actions"]) == 7
        assert isinstance(data["badges"], list)
        assert "Where to improve" in result.output

    def test_score_unresolvable_name(self, fake_pipeline):
        result = runner.invoke(cli.app, ["score", "nobody.eth"])
        assert result.exit_code == 1
        assert "nobody.eth" in result.output

    def test_engagement(self, fake_pipeline):
        result = runner.invoke(cli.app, ["engagement", WALLET])
        assert result.exit_code == 0, result.output
        assert "Followers" in result.output

    def test_rank(self, fake_pipeline, tmp_path):
        output = tmp_path / "feed.json"
        result = runner.invoke(cli.app, ["rank", WALLET, "alice.eth", "--output", str(output)])

        assert result.exit_code == 0, result.output
        data = json.loads(output.read_text())
        assert data["meta"]["count"] == 2
        assert "inputs" not in data["items"][0]

    def test_candidates(self, fake_pipeline):
        result = runner.invoke(cli.app, ["candidates", WALLET])
        assert result.exit_code == 0, result.output
        assert "0x" + "1" * 40 in result.output
