"""
Greeter commands - deploy and use the sample Greeter contract.

Commands:
- deploy: Deploy a new Greeter (address saved as GREETER_ADDRESS)
- greet:  Read the current greeting
- update: Write a new greeting and print the Modified event
- events: List Modified events over a block range
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import click

from ..chain.codec import AbiError
from ..chain.gas import DEFAULT_GAS_LIMIT, DEFAULT_GAS_PRICE, StaticGasProvider
from ..chain.rpc import RpcError
from ..chain.tx import TransactionError
from ..config import ETHDEMO_ENV, save_env_value
from ..contracts.greeter import Greeter
from ..utils import bytes_to_hex
from .common import address_link, build_manager, fail, load_account, rpc_url_option, tx_link, wallet_options

_ERRORS = (RpcError, TransactionError, AbiError, FileNotFoundError, ValueError)


def _resolve_address(address: Optional[str]) -> str:
    """Priority: --address flag  >  GREETER_ADDRESS env var."""
    if address:
        return address
    configured = os.environ.get("GREETER_ADDRESS")
    if configured:
        return configured
    raise click.ClickException(
        "Greeter address not specified. Use --address or run 'ethdemo greeter deploy' "
        f"(saves GREETER_ADDRESS in {ETHDEMO_ENV})."
    )


def _gas_options(func):
    func = click.option("--gas-limit", default=DEFAULT_GAS_LIMIT, type=int, show_default=True)(func)
    func = click.option("--gas-price", default=DEFAULT_GAS_PRICE, type=int, show_default=True,
                        help="Gas price in wei")(func)
    return func


@click.group()
@rpc_url_option
@wallet_options
@click.pass_context
def greeter(ctx: click.Context, rpc_url: str, keystore: Optional[Path], password: Optional[str]) -> None:
    """Deploy and use the sample Greeter contract."""
    ctx.ensure_object(dict)
    ctx.obj["rpc_url"] = rpc_url
    ctx.obj["keystore"] = keystore
    ctx.obj["password"] = password


def _contract(ctx: click.Context, address: Optional[str], gas_price: int = DEFAULT_GAS_PRICE,
              gas_limit: int = DEFAULT_GAS_LIMIT) -> Greeter:
    account = load_account(ctx.obj["keystore"], ctx.obj["password"])
    manager = build_manager(account, ctx.obj["rpc_url"])
    try:
        return Greeter.load(_resolve_address(address), manager, StaticGasProvider(gas_price, gas_limit))
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc


@greeter.command()
@click.option("--greeting", default="test", show_default=True, help="Initial greeting")
@click.option("--bin", "bytecode_path", default=None,
              type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help="Creation bytecode file (default: contracts/build/Greeter.bin, else compiled)")
@click.option("--save/--no-save", default=True, help="Save the address as GREETER_ADDRESS")
@_gas_options
@click.pass_context
def deploy(
    ctx: click.Context,
    greeting: str,
    bytecode_path: Optional[Path],
    save: bool,
    gas_price: int,
    gas_limit: int,
) -> None:
    """Deploy a new Greeter contract."""
    account = load_account(ctx.obj["keystore"], ctx.obj["password"])
    manager = build_manager(account, ctx.obj["rpc_url"])
    bytecode = bytecode_path.read_text(encoding="utf-8").strip() if bytecode_path else None

    click.echo("  Deploying Greeter...")
    try:
        contract = Greeter.deploy(
            manager,
            greeting,
            StaticGasProvider(gas_price, gas_limit),
            bytecode=bytecode,
        )
    except _ERRORS as exc:
        fail(f"Deployment failed: {exc}")
        return

    click.secho("  Greeter deployed!", fg="green", bold=True)
    click.echo(click.style("  Address: ", dim=True) + address_link(contract.address))
    click.echo(click.style("  TX:      ", dim=True) + tx_link(contract.deploy_result.tx_hash))
    if save:
        save_env_value("GREETER_ADDRESS", contract.address)


@greeter.command()
@click.option("--address", default=None, help="Greeter address (default: GREETER_ADDRESS)")
@click.pass_context
def greet(ctx: click.Context, address: Optional[str]) -> None:
    """Read the current greeting."""
    contract = _contract(ctx, address)
    try:
        click.echo(contract.greet())
    except _ERRORS as exc:
        fail(f"Call failed: {exc}")


@greeter.command()
@click.argument("text")
@click.option("--address", default=None, help="Greeter address (default: GREETER_ADDRESS)")
@_gas_options
@click.pass_context
def update(ctx: click.Context, text: str, address: Optional[str], gas_price: int, gas_limit: int) -> None:
    """Store TEXT as the new greeting."""
    contract = _contract(ctx, address, gas_price, gas_limit)
    try:
        result = contract.new_greeting(text)
        events = contract.get_modified_events(result)
    except _ERRORS as exc:
        fail(f"Update failed: {exc}")
        return

    click.secho("  Greeting updated!", fg="green", bold=True)
    click.echo(click.style("  TX: ", dim=True) + tx_link(result.tx_hash))
    for event in events:
        click.echo(f"  Modified: {event.old_greeting!r} -> {event.new_greeting!r}")


@greeter.command()
@click.option("--address", default=None, help="Greeter address (default: GREETER_ADDRESS)")
@click.option("--from-block", default="earliest", show_default=True)
@click.option("--to-block", default="latest", show_default=True)
@click.pass_context
def events(ctx: click.Context, address: Optional[str], from_block: str, to_block: str) -> None:
    """List Modified events emitted by the contract."""
    contract = _contract(ctx, address)
    start = int(from_block) if from_block.isdigit() else from_block
    end = int(to_block) if to_block.isdigit() else to_block

    try:
        found = contract.modified_events(start, end)
    except _ERRORS as exc:
        fail(f"Log query failed: {exc}")
        return

    if not found:
        click.echo("No Modified events.")
        return

    for event in found:
        click.echo(f"  Block {event.block_number}: {event.old_greeting!r} -> {event.new_greeting!r}")
        click.echo(
            click.style("    indexed: ", dim=True)
            + f"{bytes_to_hex(event.old_greeting_idx)} -> {bytes_to_hex(event.new_greeting_idx)}"
        )
