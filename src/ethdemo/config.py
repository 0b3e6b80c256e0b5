"""
Configuration for the ethdemo client.

Settings live in environment variables, optionally persisted in
~/.ethdemo/.env (loaded with python-dotenv).  Explicit CLI options always
win over the environment, which wins over the built-in defaults below.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Default config directory
ETHDEMO_DIR = Path.home() / ".ethdemo"
ETHDEMO_ENV = ETHDEMO_DIR / ".env"

DEFAULT_RPC_URL = "http://localhost:8545"

# Recipient used by the demo transfer when none is given
DEFAULT_RECIPIENT = "0x76BE1022Afa6375E6D30BAD7a6Eae4ACC4D197B6"

DEFAULTS: dict[str, str] = {
    "ETH_RPC_URL": DEFAULT_RPC_URL,
    "EXPLORER_URL": "https://sepolia.etherscan.io",
}


def load_env(env_path: Optional[Path] = None) -> Optional[Path]:
    """
    Load ~/.ethdemo/.env into the process environment.

    Values already present in the environment are kept.

    Returns:
        The path that was loaded, or None if it does not exist
    """
    env_path = env_path or ETHDEMO_ENV
    if not env_path.exists():
        return None
    load_dotenv(env_path, override=False)
    return env_path


def read_env_file(env_path: Optional[Path] = None) -> dict[str, str]:
    """Parse KEY=VALUE lines from a .env file (comments and blanks skipped)."""
    env_path = env_path or ETHDEMO_ENV
    existing: dict[str, str] = {}
    if env_path.exists():
        for line in env_path.read_text(encoding="utf-8").splitlines():
            stripped = line.strip()
            if stripped and not stripped.startswith("#") and "=" in stripped:
                k, v = stripped.split("=", 1)
                existing[k.strip()] = v.strip()
    return existing


def save_env_value(key: str, value: str, env_path: Optional[Path] = None) -> Path:
    """Save a single key=value to ~/.ethdemo/.env (preserving other entries)."""
    env_path = env_path or ETHDEMO_ENV
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing = read_env_file(env_path)
    existing[key] = value
    lines = [f"{k}={v}" for k, v in existing.items()]
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")

    # Set secure permissions on Unix
    if os.name != "nt":
        env_path.chmod(0o600)

    os.environ[key] = value
    return env_path


def get_setting(key: str, default: Optional[str] = None) -> Optional[str]:
    """Look up a setting in the environment, then in DEFAULTS."""
    value = os.environ.get(key)
    if value:
        return value
    if default is not None:
        return default
    return DEFAULTS.get(key)


def explorer_url() -> str:
    return (get_setting("EXPLORER_URL") or "").rstrip("/")
