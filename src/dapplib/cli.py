"""
DappLib CLI

Command-line front end for the dapp operations.  Every command loads the
configuration, runs one dispatcher operation against the configured access
node / IPFS node, and prints the resulting envelope (``--html`` for the
rendered fragment, ``--json`` for the raw envelope).

Commands:
  accounts        - List configured accounts and their roles
  account-info    - Show an account's address, balance and key
  init-account    - Initialize an account's NFT collection
  ids             - List an account's NFT ids
  init-proposals  - Upload proposal files to IPFS and register them
  issue-ballot    - Issue a ballot to a voter
  vote            - Cast a vote for a proposal
  proposals       - List the ballot's proposals
  multihash       - Decode a base-58 multihash
  watch           - Stream events of one type
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Awaitable, Optional

import click
import structlog

from .chain.rpc import HttpChainGateway
from .config import DappConfig, load_config
from .dispatch import (
    DappContext,
    add_event_handler,
    get_account_info,
    get_ids,
    get_proposal_list,
    initialize_account,
    initialize_proposals,
    issue_ballot,
    vote,
)
from .envelope import ResultEnvelope
from .errors import DappError
from .multihash import decode
from .render import HtmlRenderer
from .store.ipfs import IpfsStore, UploadFile

VERSION = "0.3.0"


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def build_context(config: DappConfig) -> DappContext:
    return DappContext(config=config, chain=HttpChainGateway(), store=IpfsStore(config.ipfs))


def _config(ctx: click.Context) -> DappConfig:
    if "config" not in ctx.obj:
        try:
            ctx.obj["config"] = load_config(ctx.obj["config_path"])
        except DappError as exc:
            click.secho(f"ERROR: {exc}", fg="red")
            sys.exit(exc.exit_code)
    return ctx.obj["config"]


def _context(ctx: click.Context) -> DappContext:
    return build_context(_config(ctx))


def _echo_envelope(ctx: click.Context, envelope: ResultEnvelope) -> None:
    output = ctx.obj["output"]
    if output == "html":
        click.echo(HtmlRenderer(ipfs=_config(ctx).ipfs).render_result(envelope))
        return
    if output == "json":
        click.echo(json.dumps(envelope.to_dict(), indent=2, default=str))
        return

    colour = "red" if envelope.is_error else "green"
    result = envelope.to_dict()["result"]
    if isinstance(result, list):
        click.secho(f"{envelope.label}:", fg=colour)
        for item in result:
            click.echo(f"  {item}")
    elif isinstance(result, dict):
        click.secho(f"{envelope.label}:", fg=colour)
        for key, value in result.items():
            click.echo(f"  {key}: {value}")
    else:
        click.secho(f"{envelope.label}: {result}", fg=colour)


def _run(ctx: click.Context, operation: Awaitable[ResultEnvelope]) -> None:
    try:
        envelope = asyncio.run(operation)
    except DappError as exc:
        _echo_envelope(ctx, ResultEnvelope.error(exc))
        sys.exit(exc.exit_code)
    _echo_envelope(ctx, envelope)


# ============ Main CLI Group ============


@click.group()
@click.version_option(version=VERSION, prog_name="dapplib")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar="DAPP_CONFIG",
    default="dapp-config.json",
    show_default=True,
    help="Path to dapp-config.json",
)
@click.option("--html", "output", flag_value="html", help="Print the rendered HTML fragment")
@click.option("--json", "output", flag_value="json", help="Print the raw result envelope")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: Path, output: Optional[str], verbose: bool) -> None:
    """DappLib - ledger and IPFS operations for the dapp."""
    _configure_logging(verbose)
    ctx.obj = {"config_path": config_path, "output": output or "text"}


# ============ Accounts ============


@cli.command()
@click.pass_context
def accounts(ctx: click.Context) -> None:
    """List configured accounts and their roles."""
    config = _config(ctx)
    for address in config.accounts:
        roles = []
        if address == config.owner:
            roles.append("owner")
        if address in config.admins:
            roles.append("admin")
        if address in config.users:
            roles.append("user")
        signer = " [key]" if config.key_for(address) else ""
        click.echo(f"{address}  {', '.join(roles) or '-'}{signer}")


@cli.command("account-info")
@click.argument("account")
@click.pass_context
def account_info(ctx: click.Context, account: str) -> None:
    """Show an account's address, balance and first key."""
    _run(ctx, get_account_info(_context(ctx), account))


# ============ NFT ============


@cli.command("init-account")
@click.argument("account")
@click.pass_context
def init_account(ctx: click.Context, account: str) -> None:
    """Initialize ACCOUNT's NFT collection."""
    _run(ctx, initialize_account(_context(ctx), account))


@cli.command()
@click.argument("account")
@click.pass_context
def ids(ctx: click.Context, account: str) -> None:
    """List the NFT ids owned by ACCOUNT."""
    _run(ctx, get_ids(_context(ctx), account))


# ============ Ballot ============


@cli.command("init-proposals")
@click.option("--admin", required=True, help="Ballot administrator account")
@click.argument(
    "files",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.pass_context
def init_proposals(ctx: click.Context, admin: str, files: tuple[Path, ...]) -> None:
    """Upload proposal FILES to IPFS and register their CIDs."""
    uploads = [UploadFile.from_path(path) for path in files]

    def progress(sent: int, path: str) -> None:
        click.echo(f"  {path}: {sent} bytes", err=True)

    _run(ctx, initialize_proposals(_context(ctx), admin, uploads, progress))


@cli.command("issue-ballot")
@click.option("--admin", required=True, help="Ballot administrator account")
@click.option("--voter", required=True, help="Voter account receiving the ballot")
@click.pass_context
def issue_ballot_command(ctx: click.Context, admin: str, voter: str) -> None:
    """Issue a ballot to a voter."""
    _run(ctx, issue_ballot(_context(ctx), admin, voter))


@cli.command("vote")
@click.option("--voter", required=True, help="Voting account")
@click.option("--proposal-index", required=True, type=click.IntRange(min=0), help="Proposal index")
@click.pass_context
def vote_command(ctx: click.Context, voter: str, proposal_index: int) -> None:
    """Vote for a proposal."""
    _run(ctx, vote(_context(ctx), voter, proposal_index))


@cli.command()
@click.option("--owner", "ballot_owner", required=True, help="Ballot owner account")
@click.pass_context
def proposals(ctx: click.Context, ballot_owner: str) -> None:
    """List the ballot's proposals."""
    _run(ctx, get_proposal_list(_context(ctx), ballot_owner))


# ============ Utilities ============


@cli.command()
@click.argument("cid")
def multihash(cid: str) -> None:
    """Decode a base-58 multihash (IPFS CIDv0)."""
    try:
        parts = decode(cid)
    except DappError as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(exc.exit_code)
    click.echo(f"Hash function: 0x{parts.hash_function:02x}")
    click.echo(f"Digest length: {parts.digest_length}")
    click.echo(f"Digest:        {parts.digest}")


@cli.command()
@click.argument("event")
@click.option("--contract", default=None, help="Contract emitting the event")
@click.option("--count", default=0, type=int, help="Stop after COUNT events (0 = run until interrupted)")
@click.pass_context
def watch(ctx: click.Context, event: str, contract: Optional[str], count: int) -> None:
    """Stream EVENT deliveries until interrupted."""

    async def stream() -> int:
        done = asyncio.Event()
        seen = 0
        failed = False

        def on_envelope(envelope: ResultEnvelope) -> None:
            nonlocal seen, failed
            _echo_envelope(ctx, envelope)
            seen += 1
            if envelope.is_error:
                failed = True
                done.set()
            elif count and seen >= count:
                done.set()

        subscription = await add_event_handler(_context(ctx), contract, event, {}, on_envelope)
        try:
            await done.wait()
        finally:
            await subscription.cancel()
        return 1 if failed else 0

    try:
        code = asyncio.run(stream())
    except KeyboardInterrupt:
        code = 0
    sys.exit(code)


# ============ Entry Points ============


def main() -> None:
    """DappLib CLI entry point."""
    cli()


if __name__ == "__main__":
    main()
