"""
CLI integration tests using Click's test runner.

Gateways are replaced with the in-memory fakes from conftest, so no access
node or IPFS node is needed.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from dapplib.cli import cli
from dapplib.dispatch import DappContext
from dapplib.errors import GatewayError
from dapplib.store.ipfs import AddedEntry

ACCOUNTS = ["01cf0e2f2f715450", "179b6b1cb6755e31", "f3fcd2c1a78f5eee", "e03daebed8ca0615", "045a1763c93006ca"]
CID_A = "QmYwAPJzv5CZsnA625s3Xf2nemtYgPpHdWEz79ojWnPbdG"


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def config_path(tmp_path: Path) -> Path:
    path = tmp_path / "dapp-config.json"
    path.write_text(
        json.dumps({"httpUri": "http://localhost:8080", "accounts": ACCOUNTS}),
        encoding="utf-8",
    )
    return path


@pytest.fixture()
def fake_context(chain, store):
    """Route every CLI command through the fake gateways."""
    env = {k: v for k, v in os.environ.items() if not k.startswith("DAPP_")}
    with patch.dict(os.environ, env, clear=True):
        with patch("dapplib.config.DAPPLIB_ENV", Path("/nonexistent/.env")):
            with patch(
                "dapplib.cli.build_context",
                lambda config: DappContext(config=config, chain=chain, store=store),
            ):
                yield chain, store


class TestBasics:
    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.3.0" in result.output

    def test_multihash_needs_no_config(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["--config", str(tmp_path / "missing.json"), "multihash", CID_A])
        assert result.exit_code == 0
        assert "Hash function: 0x12" in result.output
        assert "Digest length: 32" in result.output

    def test_multihash_rejects_garbage(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["multihash", "0OIl"])
        assert result.exit_code == 4
        assert "ERROR" in result.output

    def test_missing_config(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["--config", str(tmp_path / "missing.json"), "ids", ACCOUNTS[0]])
        assert result.exit_code == 2
        assert "Config file not found" in result.output

    def test_accounts(self, runner: CliRunner, config_path: Path, fake_context) -> None:
        result = runner.invoke(cli, ["--config", str(config_path), "accounts"])
        assert result.exit_code == 0
        lines = result.output.splitlines()
        assert lines[0] == f"{ACCOUNTS[0]}  owner"
        assert lines[1] == f"{ACCOUNTS[1]}  admin"
        assert lines[4] == f"{ACCOUNTS[4]}  user"


class TestOperations:
    def test_ids_text(self, runner: CliRunner, config_path: Path, fake_context) -> None:
        chain, _ = fake_context
        chain.call_data = [3, 5]
        result = runner.invoke(cli, ["--config", str(config_path), "ids", ACCOUNTS[0]])
        assert result.exit_code == 0
        assert "NFT IDs:" in result.output
        assert "  3" in result.output and "  5" in result.output

    def test_ids_json(self, runner: CliRunner, config_path: Path, fake_context) -> None:
        result = runner.invoke(cli, ["--config", str(config_path), "--json", "ids", ACCOUNTS[0]])
        assert result.exit_code == 0
        assert json.loads(result.output) == {
            "type": "array",
            "label": "NFT IDs",
            "result": [],
            "formatter": ["Text"],
        }

    def test_vote_html(self, runner: CliRunner, config_path: Path, fake_context) -> None:
        chain, _ = fake_context
        result = runner.invoke(
            cli,
            ["--config", str(config_path), "--html", "vote", "--voter", ACCOUNTS[4], "--proposal-index", "1"],
        )
        assert result.exit_code == 0
        assert 'class="note bg-green-400' in result.output
        assert chain.calls[0][2] == "ballot_vote"

    def test_vote_rejects_negative_index(self, runner: CliRunner, config_path: Path, fake_context) -> None:
        result = runner.invoke(
            cli, ["--config", str(config_path), "vote", "--voter", ACCOUNTS[4], "--proposal-index", "-1"]
        )
        assert result.exit_code == 2

    def test_issue_ballot_failure_exit_code(self, runner: CliRunner, config_path: Path, fake_context) -> None:
        chain, _ = fake_context
        chain.submit_error = GatewayError("RPC error: ballot already issued")
        result = runner.invoke(
            cli,
            ["--config", str(config_path), "issue-ballot", "--admin", ACCOUNTS[1], "--voter", ACCOUNTS[4]],
        )
        assert result.exit_code == 3
        assert "ballot already issued" in result.output

    def test_init_proposals(self, runner: CliRunner, config_path: Path, fake_context, tmp_path: Path) -> None:
        chain, store = fake_context
        proposal = tmp_path / "proposal-a.md"
        proposal.write_text("# Longer opening hours\n", encoding="utf-8")
        store.entries = [AddedEntry("proposal-a.md", CID_A, 23)]

        result = runner.invoke(
            cli, ["--config", str(config_path), "init-proposals", "--admin", ACCOUNTS[1], str(proposal)]
        )

        assert result.exit_code == 0
        assert "Transaction Hash:" in result.output
        assert store.calls[0]["files"][0].content == b"# Longer opening hours\n"
        assert chain.calls[0][3]["proposals"]["value"] == [{"type": "String", "value": CID_A}]
