"""
Funds commands - query balances and send ether.

Commands:
- balance:  Show the ether balance of an address (default: own wallet)
- transfer: Send ether from the wallet to a recipient
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click

from ..chain.gas import TRANSFER_GAS_LIMIT, TRANSFER_GAS_PRICE
from ..chain.rpc import RpcError, get_balance
from ..chain.tx import TransactionError, send_funds
from ..utils import Unit, format_ether, from_wei, is_address
from .common import build_manager, fail, load_account, rpc_url_option, tx_link, wallet_options


@click.command()
@click.argument("address", required=False)
@rpc_url_option
@wallet_options
@click.option("--block", default="latest", show_default=True,
              help="Block number or tag (latest, pending, earliest)")
def balance(
    address: Optional[str],
    rpc_url: str,
    keystore: Optional[Path],
    password: Optional[str],
    block: str,
) -> None:
    """Show the ether balance of ADDRESS (default: your wallet)."""
    if address is None:
        address = load_account(keystore, password).address
    elif not is_address(address):
        fail(f"Invalid address: {address}")

    if block.isdigit():
        block = hex(int(block))

    try:
        wei = get_balance(address, block=block, rpc_url=rpc_url)
    except RpcError as exc:
        fail(f"Failed to read balance: {exc}")
        return

    click.echo(click.style("  Address: ", dim=True) + address)
    click.echo(click.style("  Balance: ", dim=True) + click.style(format_ether(wei), fg="bright_white"))
    click.echo(click.style("           ", dim=True) + f"{wei} wei ({from_wei(wei, Unit.GWEI).normalize():f} gwei)")


@click.command()
@click.option("--to", "recipient", required=True, help="Recipient address (0x...)")
@click.option("--amount", required=True, help="Amount in --unit (e.g. 0.01)")
@click.option("--unit", default="ether", show_default=True,
              type=click.Choice([u.name.lower() for u in Unit], case_sensitive=False))
@click.option("--gas-price", default=TRANSFER_GAS_PRICE, type=int, show_default=True,
              help="Gas price in wei")
@click.option("--gas-limit", default=TRANSFER_GAS_LIMIT, type=int, show_default=True)
@click.option("--no-wait", is_flag=True, help="Return after broadcasting, without waiting for the receipt")
@rpc_url_option
@wallet_options
def transfer(
    recipient: str,
    amount: str,
    unit: str,
    gas_price: int,
    gas_limit: int,
    no_wait: bool,
    rpc_url: str,
    keystore: Optional[Path],
    password: Optional[str],
) -> None:
    """Send ether from your wallet to a recipient.

    \b
    Examples:
      ethdemo transfer --to 0xAbc... --amount 0.01
      ethdemo transfer --to 0xAbc... --amount 1 --unit wei --gas-price 10
    """
    if not is_address(recipient):
        fail(f"Invalid recipient address: {recipient}")

    account = load_account(keystore, password)
    manager = build_manager(account, rpc_url)

    click.echo(click.style("  From:   ", dim=True) + account.address)
    click.echo(click.style("  To:     ", dim=True) + recipient)
    click.echo(click.style("  Amount: ", dim=True) + f"{amount} {unit}")
    click.echo()
    click.echo("  Sending transaction...")

    try:
        result = send_funds(
            manager,
            recipient,
            amount,
            unit,
            gas_price=gas_price,
            gas_limit=gas_limit,
            wait=not no_wait,
        )
    except (RpcError, TransactionError, ValueError) as exc:
        fail(f"Transfer failed: {exc}")
        return

    if no_wait:
        click.secho("  Transaction sent.", fg="green")
    else:
        click.secho("  Transfer successful!", fg="green", bold=True)
    click.echo(click.style("  TX: ", dim=True) + tx_link(result.tx_hash))
