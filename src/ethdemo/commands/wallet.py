"""
Wallet commands - create and inspect keystore wallet files.

Commands:
- create: Generate a new key and write it as a keystore v3 file
- show:   Decrypt a wallet file and print its address
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click

from ..config import save_env_value
from ..utils import to_checksum_address
from ..wallet.keys import KEYSTORE_DIR, WalletError, create_keystore, load_credentials, read_keystore
from .common import fail


@click.group()
def wallet() -> None:
    """Create and inspect keystore wallet files."""


@wallet.command()
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True,
              help="Password used to encrypt the wallet")
@click.option("--dir", "directory", default=None,
              type=click.Path(file_okay=False, path_type=Path),
              help=f"Destination directory (default: {KEYSTORE_DIR})")
@click.option("--private-key", default=None, help="Import this key instead of generating one")
@click.option("--save/--no-save", default=True,
              help="Record the wallet path as KEYSTORE_PATH in the config")
def create(password: str, directory: Optional[Path], private_key: Optional[str], save: bool) -> None:
    """Generate a new wallet file."""
    try:
        path, address = create_keystore(password, directory=directory, private_key=private_key)
    except (WalletError, ValueError) as exc:
        fail(str(exc))
        return

    click.secho("Wallet created!", fg="green", bold=True)
    click.echo(click.style("  Address: ", dim=True) + address)
    click.echo(click.style("  File:    ", dim=True) + str(path))
    if save:
        env_path = save_env_value("KEYSTORE_PATH", str(path))
        click.echo(click.style("  Config:  ", dim=True) + str(env_path))
    click.echo()
    click.secho("  IMPORTANT: Back up the wallet file and password. Loss is irreversible.", fg="yellow")


@wallet.command()
@click.argument("path", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--password", default=None, envvar="WALLET_PASSWORD",
              help="Decrypt and verify the file with this password")
def show(path: Path, password: Optional[str]) -> None:
    """Show the address held by a wallet file."""
    try:
        keyfile = read_keystore(path)
        if password is None:
            declared = keyfile.get("address")
            if not declared:
                fail("Wallet file does not declare an address; pass --password to decrypt it")
            click.echo(f"Address: {to_checksum_address(declared)}")
            click.echo("(not verified: pass --password to decrypt)")
            return
        account = load_credentials(password, path)
    except WalletError as exc:
        fail(str(exc))
        return

    click.echo(f"Address: {account.address}")
    click.secho("Password OK", fg="green")
