"""
ethdemo CLI

Command-line interface for the Ethereum sample client.

Identity = ECDSA/secp256k1 wallet (keystore v3 file or PRIVATE_KEY).
All chain access goes through a JSON-RPC endpoint (--rpc-url / ETH_RPC_URL).

Commands:
  run       - Full walkthrough: connect, wallet, transfer, deploy, call, events
  wallet    - Create / show keystore wallet files
  balance   - Show an ether balance
  transfer  - Send ether
  greeter   - Deploy and use the Greeter contract
  whoami    - Show current wallet address
  info      - Show node and configuration information
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

import click

from .chain.rpc import RpcError, block_number, client_version, get_chain_id
from .config import ETHDEMO_ENV, get_setting, load_env
from .wallet.keys import WalletError, resolve_account

# ============ Constants ============

VERSION = "1.0.0"

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


# ============ Banner ============


def _print_banner() -> None:
    border = click.style("  ◆ ═══════════════════════════════════════ ◆", fg="cyan")
    click.echo()
    click.echo(border)
    click.echo()
    click.echo(
        click.style("        E T H D E M O", fg="bright_white", bold=True)
        + click.style(f"          v{VERSION}", dim=True)
    )
    click.secho("        ─── Ethereum JSON-RPC client ───", fg="cyan")
    click.echo()
    click.echo(border)
    click.echo()


def configure_logging(verbose: int, log_level: Optional[str]) -> None:
    if log_level:
        level = getattr(logging, log_level.upper())
    elif verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))


# ============ Main CLI Group ============


@click.group(invoke_without_command=True)
@click.version_option(version=VERSION, prog_name="ethdemo")
@click.option("-v", "--verbose", count=True, help="Increase log verbosity (-v info, -vv debug)")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Explicit log level (overrides -v)",
)
@click.pass_context
def cli(ctx: click.Context, verbose: int, log_level: Optional[str]) -> None:
    """ethdemo — Ethereum JSON-RPC sample client."""
    load_env()
    configure_logging(verbose, log_level)
    if ctx.invoked_subcommand is None:
        _print_banner()
        click.echo(ctx.get_help())


# ============ Top-level Commands ============

from .commands.demo import run  # noqa: E402
from .commands.funds import balance, transfer  # noqa: E402
from .commands.greeter import greeter  # noqa: E402
from .commands.wallet import wallet  # noqa: E402

cli.add_command(run)
cli.add_command(wallet)
cli.add_command(balance)
cli.add_command(transfer)
cli.add_command(greeter)


# ============ Identity ============


@cli.command()
def whoami() -> None:
    """Show current wallet identity."""
    try:
        account = resolve_account()
    except WalletError as exc:
        click.echo("No wallet found.")
        click.echo(f"  ({exc})")
        click.echo("Run 'ethdemo wallet create' to create one.")
        sys.exit(1)
    click.echo(f"Address: {account.address}")


# ============ Info ============


@cli.command()
@click.option("--rpc-url", envvar="ETH_RPC_URL", default=None, help="Ethereum JSON-RPC endpoint")
def info(rpc_url: Optional[str]) -> None:
    """Show node and configuration information."""
    _print_banner()
    rpc_url = rpc_url or get_setting("ETH_RPC_URL")

    # ── Node ──
    click.secho("  Node ───────────────────────────────────", fg="cyan")
    click.echo()
    click.echo(click.style("  RPC:         ", dim=True) + click.style(rpc_url, fg="bright_white"))
    try:
        version = client_version(rpc_url=rpc_url)
        chain_id = get_chain_id(rpc_url=rpc_url)
        height = block_number(rpc_url=rpc_url)
        click.echo(click.style("  Client:      ", dim=True) + click.style(version, fg="bright_white"))
        click.echo(click.style("  Chain ID:    ", dim=True) + click.style(str(chain_id), fg="bright_white"))
        click.echo(click.style("  Block:       ", dim=True) + click.style(str(height), fg="bright_white"))
    except RpcError as exc:
        click.echo(click.style("  Status:      ", dim=True) + click.style(f"unreachable ({exc})", fg="yellow"))
    click.echo()

    # ── Wallet ──
    click.secho("  Wallet ─────────────────────────────────", fg="cyan")
    click.echo()
    try:
        address = resolve_account().address
        click.echo(click.style("  Address:     ", dim=True) + click.style(address, fg="bright_white"))
    except WalletError:
        click.echo(
            click.style("  Address:     ", dim=True)
            + click.style("not initialized", fg="yellow")
            + click.style("  (run: ethdemo wallet create)", dim=True)
        )
    click.echo(click.style("  Config:      ", dim=True) + str(ETHDEMO_ENV))
    greeter_address = get_setting("GREETER_ADDRESS")
    if greeter_address:
        click.echo(click.style("  Greeter:     ", dim=True) + greeter_address)
    click.echo()

    # ── Commands ──
    click.secho("  Commands ───────────────────────────────", fg="cyan")
    click.echo()

    commands = [
        ("run     ", "Full walkthrough against a node"),
        ("wallet  ", "Create / show wallet files"),
        ("balance ", "Show an ether balance"),
        ("transfer", "Send ether"),
        ("greeter ", "Deploy and use the Greeter contract"),
        ("whoami  ", "Show current wallet address"),
    ]
    for cmd, desc in commands:
        click.echo(
            click.style("  ", dim=True)
            + click.style(cmd, fg="bright_white", bold=True)
            + click.style("  ◇  ", fg="cyan")
            + click.style(desc, dim=True)
        )

    click.echo()


# ============ Entry Points ============


def main() -> None:
    """ethdemo CLI entry point."""
    # Ensure UTF-8 output on Windows (for Unicode box-drawing / symbols)
    if sys.platform == "win32":
        try:
            sys.stdout.reconfigure(encoding="utf-8")  # type: ignore[union-attr]
            sys.stderr.reconfigure(encoding="utf-8")  # type: ignore[union-attr]
        except (AttributeError, OSError):
            pass  # Fallback: old Python or non-tty
    cli()


if __name__ == "__main__":
    main()
