"""
Shared click options and helpers for the command modules.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable, Optional

import click
from eth_account.signers.local import LocalAccount

from ..chain.tx import TransactionManager
from ..config import DEFAULT_RPC_URL, ETHDEMO_ENV, explorer_url
from ..wallet.keys import WalletError, resolve_account


def rpc_url_option(func: Callable) -> Callable:
    return click.option(
        "--rpc-url",
        envvar="ETH_RPC_URL",
        default=DEFAULT_RPC_URL,
        show_default=True,
        help="Ethereum JSON-RPC endpoint",
    )(func)


def wallet_options(func: Callable) -> Callable:
    func = click.option(
        "--password",
        envvar="WALLET_PASSWORD",
        default=None,
        help="Wallet file password",
    )(func)
    func = click.option(
        "--keystore",
        "keystore",
        envvar="KEYSTORE_PATH",
        default=None,
        type=click.Path(dir_okay=False, path_type=Path),
        help="Keystore v3 wallet file (default: PRIVATE_KEY from config)",
    )(func)
    return func


def load_account(keystore: Optional[Path], password: Optional[str]) -> LocalAccount:
    """Resolve credentials or exit with a readable error."""
    try:
        if keystore is not None and password is None:
            password = click.prompt("Wallet password", hide_input=True)
        return resolve_account(keystore=keystore, password=password)
    except WalletError as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        click.echo(f"Run 'ethdemo wallet create' or configure {ETHDEMO_ENV}.")
        sys.exit(1)


def build_manager(
    account: LocalAccount,
    rpc_url: str,
    timeout: float = 120.0,
    poll_interval: float = 2.0,
) -> TransactionManager:
    return TransactionManager(
        account,
        rpc_url=rpc_url,
        timeout=timeout,
        poll_interval=poll_interval,
    )


def tx_link(tx_hash: str) -> str:
    base = explorer_url()
    return f"{base}/tx/{tx_hash}" if base else tx_hash


def address_link(address: str) -> str:
    base = explorer_url()
    return f"{base}/address/{address}" if base else address


def fail(message: str) -> None:
    click.secho(f"ERROR: {message}", fg="red")
    sys.exit(1)
