"""
Demo - the end-to-end walkthrough of the client.

Flow:
1. Connect to the node and show its client version
2. Load the wallet
3. Show the wallet balance
4. Send a small amount of ether to another address
5. Deploy the Greeter contract
6. Read the greeting stored in the contract
7. Update the greeting
8. Read the greeting again
9. Show the Modified events emitted by the update

Every step depends on the previous one; the first failure aborts the run.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import click

from ..chain.codec import AbiError
from ..chain.gas import TRANSFER_GAS_LIMIT, DefaultGasProvider
from ..chain.rpc import RpcError, client_version, get_balance
from ..chain.tx import TransactionError, send_funds
from ..config import DEFAULT_RECIPIENT
from ..contracts.greeter import Greeter
from ..utils import Unit, bytes_to_hex, format_ether
from .common import address_link, build_manager, load_account, rpc_url_option, tx_link, wallet_options


def _step(n: int, total: int, text: str) -> None:
    click.secho(f"  [{n}/{total}] {text}", fg="bright_white")


def _detail(label: str, value: str) -> None:
    click.echo(click.style(f"        {label}: ", dim=True) + value)


@click.command("run")
@rpc_url_option
@wallet_options
@click.option("--to", "recipient", default=DEFAULT_RECIPIENT, show_default=True,
              help="Recipient of the demo transfer")
@click.option("--amount", default="1", show_default=True, help="Amount to transfer")
@click.option("--unit", default="wei", show_default=True,
              type=click.Choice([u.name.lower() for u in Unit], case_sensitive=False),
              help="Unit of --amount")
@click.option("--gas-price", "transfer_gas_price", default=10, type=int, show_default=True,
              help="Gas price in wei for the transfer")
@click.option("--skip-transfer", is_flag=True, help="Skip the ether transfer step")
@click.option("--greeting", default="test", show_default=True, help="Initial greeting")
@click.option("--new-greeting", default="Well hello again", show_default=True,
              help="Greeting written by the update step")
@click.option("--bin", "bytecode_path", default=None,
              type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help="Greeter creation bytecode (.bin); default: build artifact, else compiled")
@click.option("--timeout", default=600, type=int, show_default=True,
              help="Seconds to wait for each receipt")
def run(
    rpc_url: str,
    keystore: Optional[Path],
    password: Optional[str],
    recipient: str,
    amount: str,
    unit: str,
    transfer_gas_price: int,
    skip_transfer: bool,
    greeting: str,
    new_greeting: str,
    bytecode_path: Optional[Path],
    timeout: int,
) -> None:
    """Run the full walkthrough against a live node.

    Connects, loads the wallet, transfers ether, deploys Greeter, reads and
    updates its greeting, and prints the resulting events.

    \b
    Examples:
      ethdemo run --keystore UTC--...json --password secret
      ethdemo run --rpc-url https://sepolia.infura.io/v3/<key> --skip-transfer
    """
    total = 9

    click.echo()
    click.echo(
        click.style("  ◆ ", fg="cyan")
        + click.style("Demo", fg="bright_white", bold=True)
        + click.style(" ─── Ethereum client walkthrough", fg="cyan")
    )
    click.echo()

    try:
        # --- Step 1: Connect ---
        _step(1, total, "Connecting...")
        version = client_version(rpc_url=rpc_url)
        _detail("RPC", rpc_url)
        _detail("Connected to Ethereum client version", version)

        # --- Step 2: Wallet ---
        _step(2, total, "Loading credentials...")
        account = load_account(keystore, password)
        manager = build_manager(account, rpc_url, timeout=timeout)
        _detail("Credentials loaded", account.address)

        # --- Step 3: Balance ---
        _step(3, total, "Checking balance...")
        balance = get_balance(account.address, rpc_url=rpc_url)
        _detail("Balance", f"{balance} wei ({format_ether(balance)})")

        # --- Step 4: Transfer ---
        if skip_transfer:
            _step(4, total, "Skipping transfer (--skip-transfer).")
        else:
            _step(4, total, f"Sending {amount} {unit} to {recipient}...")
            transfer = send_funds(
                manager,
                recipient,
                amount,
                unit,
                gas_price=transfer_gas_price,
                gas_limit=TRANSFER_GAS_LIMIT,
            )
            _detail("Transaction complete, view it at", tx_link(transfer.tx_hash))

        # --- Step 5: Deploy ---
        _step(5, total, "Deploying smart contract...")
        bytecode = bytecode_path.read_text(encoding="utf-8").strip() if bytecode_path else None
        contract = Greeter.deploy(manager, greeting, DefaultGasProvider(), bytecode=bytecode)
        _detail("Smart contract deployed to address", contract.address)
        _detail("View contract at", address_link(contract.address))

        # --- Step 6: Read ---
        _step(6, total, "Reading greeting...")
        _detail("Value stored in remote smart contract", contract.greet())

        # --- Step 7: Write ---
        _step(7, total, "Updating greeting...")
        update = contract.new_greeting(new_greeting)
        _detail("TX", update.tx_hash)

        # --- Step 8: Read again ---
        _step(8, total, "Reading greeting...")
        _detail("New value stored in remote smart contract", contract.greet())

        # --- Step 9: Events ---
        _step(9, total, "Reading events...")
        events = contract.get_modified_events(update)
        if not events:
            _detail("Modified events", "none")
        for event in events:
            _detail(
                "Modify event fired, previous value",
                f"{event.old_greeting}, new value: {event.new_greeting}",
            )
            _detail(
                "Indexed event previous value",
                f"{bytes_to_hex(event.old_greeting_idx)}, new value: {bytes_to_hex(event.new_greeting_idx)}",
            )

    except (RpcError, TransactionError, AbiError, FileNotFoundError, ValueError) as exc:
        click.echo()
        click.secho(f"  Demo failed: {exc}", fg="red")
        sys.exit(1)

    click.echo()
    click.echo(
        click.style("  ◆ ", fg="green")
        + click.style("Demo Complete", fg="green", bold=True)
    )
    click.echo()
