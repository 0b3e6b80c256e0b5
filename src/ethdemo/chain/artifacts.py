"""
Artifact Loader - Loads contract ABIs and bytecode from compiler output.

Two layouts are understood:
- solc ``--abi --bin`` output:  <dir>/<Name>.abi and <dir>/<Name>.bin
- Foundry build output:         <dir>/<Name>.sol/<Name>.json

The directory is ETHDEMO_CONTRACTS_DIR, or the first contracts/build or
contracts/out found searching upward from this file and the working directory.

Contracts whose source ships with the package (Greeter) are compiled with
py-solc-x when no build directory holds them and ETHDEMO_CONTRACTS_DIR is
unset.  The pinned solc release is downloaded on first use.
"""

from __future__ import annotations

import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

import solcx
from solcx.exceptions import DownloadError, SolcError, SolcInstallationError

from ..utils import add_0x

logger = logging.getLogger(__name__)

SOURCES_DIR = Path(__file__).resolve().parent.parent / "contracts"

# Highest release matching the sources' ``pragma solidity ^0.5.0``
SOLC_VERSION = "0.5.17"

BUNDLED_SOURCES = {
    "Greeter": SOURCES_DIR / "Greeter.sol",
    "Mortal": SOURCES_DIR / "Greeter.sol",
}


def find_contracts_dir() -> Path:
    """
    Locate the compiled contracts directory.

    Raises:
        FileNotFoundError: If no build directory exists
    """
    configured = os.environ.get("ETHDEMO_CONTRACTS_DIR")
    if configured:
        path = Path(configured).expanduser()
        if not path.is_dir():
            raise FileNotFoundError(f"ETHDEMO_CONTRACTS_DIR is not a directory: {path}")
        return path

    starts = [Path.cwd().resolve(), Path(__file__).resolve()]
    for start in starts:
        for parent in [start, *start.parents]:
            for sub in ("build", "out"):
                candidate = parent / "contracts" / sub
                if candidate.is_dir():
                    return candidate
    raise FileNotFoundError(
        "Cannot find contracts/build/. Compile with "
        f"'solc --abi --bin -o contracts/build {SOURCES_DIR / 'Greeter.sol'}' "
        "or set ETHDEMO_CONTRACTS_DIR."
    )


def _foundry_artifact(out_dir: Path, contract_name: str) -> Optional[dict[str, Any]]:
    path = out_dir / f"{contract_name}.sol" / f"{contract_name}.json"
    if not path.exists():
        return None
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def _can_compile(contract_name: str, contracts_dir: Optional[Path]) -> bool:
    # An explicit directory must hold the artifact itself
    if contracts_dir is not None or os.environ.get("ETHDEMO_CONTRACTS_DIR"):
        return False
    return contract_name in BUNDLED_SOURCES


def _ensure_solc() -> None:
    installed = {str(v) for v in solcx.get_installed_solc_versions()}
    if SOLC_VERSION not in installed:
        logger.info("Installing solc %s", SOLC_VERSION)
        solcx.install_solc(SOLC_VERSION)


@lru_cache(maxsize=4)
def compile_bundled(contract_name: str) -> dict[str, Any]:
    """
    Compile a contract from the sources shipped with the package.

    Returns:
        Compiler output for the contract (``abi`` list and ``bin`` hex string)

    Raises:
        FileNotFoundError: If the contract has no bundled source, or solc
            cannot be installed or fails to compile it
    """
    source = BUNDLED_SOURCES.get(contract_name)
    if source is None or not source.exists():
        raise FileNotFoundError(f"No bundled source for {contract_name}")

    logger.info("Compiling %s with solc %s", source.name, SOLC_VERSION)
    try:
        _ensure_solc()
        output = solcx.compile_files(
            [str(source)],
            output_values=["abi", "bin"],
            solc_version=SOLC_VERSION,
        )
    except (SolcError, SolcInstallationError, DownloadError, OSError) as exc:
        raise FileNotFoundError(
            f"Bytecode not found for {contract_name} and compiling {source.name} failed: {exc}"
        ) from exc

    for key, artifact in output.items():
        if key.rsplit(":", 1)[-1] == contract_name:
            return artifact
    raise FileNotFoundError(f"solc output has no contract {contract_name}")


@lru_cache(maxsize=16)
def load_abi(contract_name: str, contracts_dir: Optional[Path] = None) -> list[dict[str, Any]]:
    """
    Load ABI for a contract.

    Raises:
        FileNotFoundError: If no artifact for the contract exists
    """
    try:
        out_dir = contracts_dir or find_contracts_dir()
        abi_path = out_dir / f"{contract_name}.abi"
        if abi_path.exists():
            with abi_path.open("r", encoding="utf-8") as f:
                return json.load(f)

        artifact = _foundry_artifact(out_dir, contract_name)
        if artifact is None:
            raise FileNotFoundError(f"ABI not found for {contract_name} in {out_dir}")
        return artifact["abi"]
    except FileNotFoundError:
        if not _can_compile(contract_name, contracts_dir):
            raise
        return compile_bundled(contract_name)["abi"]


def _read_bytecode(out_dir: Path, contract_name: str) -> str:
    bin_path = out_dir / f"{contract_name}.bin"
    if bin_path.exists():
        return bin_path.read_text(encoding="utf-8").strip()
    artifact = _foundry_artifact(out_dir, contract_name)
    if artifact is None:
        raise FileNotFoundError(f"Bytecode not found for {contract_name} in {out_dir}")
    return artifact.get("bytecode", {}).get("object", "")


@lru_cache(maxsize=16)
def load_bytecode(contract_name: str, contracts_dir: Optional[Path] = None) -> str:
    """
    Load creation bytecode for a contract.

    Falls back to compiling the bundled source when no artifact is found
    and no directory was configured.

    Returns:
        Hex-encoded bytecode string (0x-prefixed)

    Raises:
        FileNotFoundError: If no artifact for the contract exists
        ValueError: If the artifact holds no bytecode (abstract contract/interface)
    """
    try:
        bytecode = _read_bytecode(contracts_dir or find_contracts_dir(), contract_name)
    except FileNotFoundError:
        if not _can_compile(contract_name, contracts_dir):
            raise
        bytecode = compile_bundled(contract_name)["bin"]

    if not bytecode or bytecode in ("0x", "0X"):
        raise ValueError(f"No bytecode in artifact for {contract_name}")

    return add_0x(bytecode)
