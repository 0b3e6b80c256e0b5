"""
ECDSA / secp256k1 credentials for the ethdemo client.

Credentials come from one of:
- a Web3 Secret Storage (keystore v3) wallet file plus its password
- PRIVATE_KEY in ~/.ethdemo/.env or the environment

Keystore encryption and decryption are delegated to eth-account; this module
only deals with locating files and turning failures into WalletError.
"""

from __future__ import annotations

import json
import logging
import os
import secrets
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from eth_account import Account
from eth_account.signers.local import LocalAccount

from ..config import ETHDEMO_DIR, ETHDEMO_ENV
from ..utils import keystore_timestamp, remove_0x

logger = logging.getLogger(__name__)

KEYSTORE_DIR = ETHDEMO_DIR / "keystore"


class WalletError(ValueError):
    pass


def generate_eoa() -> tuple[str, str]:
    """
    Generate a new ECDSA/secp256k1 keypair (EOA).

    Returns:
        Tuple of (private_key_hex, address)
        - private_key_hex: 0x-prefixed hex private key (66 chars)
        - address: 0x-prefixed checksummed Ethereum address (42 chars)
    """
    private_key = "0x" + secrets.token_hex(32)
    account = Account.from_key(private_key)
    return private_key, account.address


def load_private_key(env_path: Optional[Path] = None) -> str:
    """
    Load private key from .env file or environment.

    Args:
        env_path: Path to .env file (default: ~/.ethdemo/.env)

    Returns:
        0x-prefixed hex private key

    Raises:
        WalletError: If PRIVATE_KEY is not set anywhere
    """
    env_path = env_path or ETHDEMO_ENV

    if env_path.exists():
        load_dotenv(env_path, override=False)

    private_key = os.environ.get("PRIVATE_KEY")
    if not private_key:
        raise WalletError(
            f"PRIVATE_KEY not found. Run 'ethdemo wallet create' or set "
            f"PRIVATE_KEY in {env_path}"
        )

    if not private_key.startswith("0x"):
        private_key = "0x" + private_key

    return private_key


def get_account(private_key: Optional[str] = None) -> LocalAccount:
    """
    Get an eth-account LocalAccount from a private key.

    Args:
        private_key: 0x-prefixed hex private key.
                     If None, loads from .env.
    """
    if private_key is None:
        private_key = load_private_key()
    try:
        return Account.from_key(private_key)
    except ValueError as exc:
        raise WalletError(f"Invalid private key: {exc}") from exc


def get_address(private_key: Optional[str] = None) -> str:
    """Get the checksummed Ethereum address for a private key."""
    return get_account(private_key).address


def read_keystore(path: Path) -> dict[str, Any]:
    """Read and minimally validate a keystore v3 JSON file."""
    path = Path(path).expanduser()
    if not path.exists():
        raise WalletError(f"Wallet file not found: {path}")

    try:
        keyfile = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise WalletError(f"Wallet file is not valid JSON: {path}") from exc

    if not isinstance(keyfile, dict) or "crypto" not in {k.lower() for k in keyfile}:
        raise WalletError(f"Not a keystore v3 wallet file: {path}")
    if keyfile.get("version") not in (3, "3", None):
        raise WalletError(f"Unsupported keystore version: {keyfile.get('version')}")

    return keyfile


def load_credentials(password: str, path: Path) -> LocalAccount:
    """
    Decrypt a keystore wallet file into a signing account.

    Args:
        password: Wallet password
        path: Path to the keystore v3 JSON file

    Returns:
        LocalAccount for signing transactions

    Raises:
        WalletError: If the file is missing, malformed, or the password is wrong
    """
    keyfile = read_keystore(path)
    try:
        private_key = Account.decrypt(keyfile, password)
    except ValueError as exc:
        raise WalletError(f"Cannot decrypt wallet {path}: {exc}") from exc

    account = Account.from_key(private_key)

    declared = keyfile.get("address")
    if declared and remove_0x(declared).lower() != remove_0x(account.address).lower():
        raise WalletError(
            f"Wallet file address {declared} does not match decrypted key {account.address}"
        )

    logger.debug("Loaded credentials for %s from %s", account.address, path)
    return account


def create_keystore(
    password: str,
    directory: Optional[Path] = None,
    private_key: Optional[str] = None,
    kdf: Optional[str] = None,
    iterations: Optional[int] = None,
) -> tuple[Path, str]:
    """
    Encrypt a private key into a new keystore v3 file.

    A fresh key is generated when none is given.  The file is named
    ``UTC--<timestamp>--<address>.json`` the way geth names its key files.

    Args:
        password: Password used to encrypt the key
        directory: Target directory (default: ~/.ethdemo/keystore)
        private_key: 0x-prefixed hex private key to import
        kdf: "scrypt" (default) or "pbkdf2"
        iterations: KDF work factor override

    Returns:
        Tuple of (wallet_file_path, address)
    """
    directory = Path(directory or KEYSTORE_DIR).expanduser()
    directory.mkdir(parents=True, exist_ok=True)

    if private_key is None:
        private_key, _ = generate_eoa()

    keyfile = Account.encrypt(private_key, password, kdf=kdf, iterations=iterations)
    address = Account.from_key(private_key).address

    wallet_path = directory / f"UTC--{keystore_timestamp()}--{remove_0x(address).lower()}.json"
    wallet_path.write_text(json.dumps(keyfile), encoding="utf-8")

    if os.name != "nt":
        wallet_path.chmod(0o600)

    logger.info("Wrote wallet file %s", wallet_path)
    return wallet_path, address


def resolve_account(
    keystore: Optional[Path] = None,
    password: Optional[str] = None,
    private_key: Optional[str] = None,
) -> LocalAccount:
    """
    Pick credentials from the available sources.

    Priority: explicit keystore + password > explicit private key >
    KEYSTORE_PATH + WALLET_PASSWORD env > PRIVATE_KEY env/.env.
    """
    if keystore is not None:
        if password is None:
            raise WalletError(f"Password required for wallet file {keystore}")
        return load_credentials(password, keystore)

    if private_key is not None:
        return get_account(private_key)

    env_keystore = os.environ.get("KEYSTORE_PATH")
    if env_keystore:
        env_password = os.environ.get("WALLET_PASSWORD")
        if env_password is None:
            raise WalletError("KEYSTORE_PATH is set but WALLET_PASSWORD is not")
        return load_credentials(env_password, Path(env_keystore))

    return get_account(load_private_key())
