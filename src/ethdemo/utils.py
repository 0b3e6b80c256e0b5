from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, localcontext
from enum import Enum
from typing import Union

from eth_hash.auto import keccak


def keccak256(data: bytes) -> bytes:
    # Keccak-256, NOT hashlib.sha3_256 (NIST SHA-3 pads differently)
    return keccak(data)


def remove_0x(value: str) -> str:
    return value[2:] if value[:2] in ("0x", "0X") else value


def add_0x(value: str) -> str:
    return value if value[:2] in ("0x", "0X") else "0x" + value


def hex_to_bytes(value: str) -> bytes:
    stripped = remove_0x(value)
    if len(stripped) % 2:
        stripped = "0" + stripped
    return bytes.fromhex(stripped)


def bytes_to_hex(data: bytes) -> str:
    return "0x" + bytes(data).hex()


def hex_to_int(value: Union[str, int, None]) -> int:
    if value is None:
        return 0
    if isinstance(value, int):
        return value
    return int(value, 16) if remove_0x(value) else 0


def int_to_hex(value: int) -> str:
    return hex(value)


def is_address(value: str) -> bool:
    stripped = remove_0x(value)
    if len(stripped) != 40:
        return False
    try:
        int(stripped, 16)
    except ValueError:
        return False
    return True


def to_checksum_address(address: str) -> str:
    """Convert an address to EIP-55 checksummed format.

    eth-account requires checksummed addresses in transaction fields.
    """
    if not is_address(address):
        raise ValueError(f"Invalid address: {address!r}")
    addr = remove_0x(address).lower()
    addr_hash = keccak256(addr.encode("utf-8")).hex()
    result = "0x"
    for i, c in enumerate(addr):
        if c in "abcdef":
            result += c.upper() if int(addr_hash[i], 16) >= 8 else c
        else:
            result += c
    return result


class Unit(Enum):
    """Ether denominations, valued by their size in wei."""

    WEI = 10**0
    KWEI = 10**3
    MWEI = 10**6
    GWEI = 10**9
    SZABO = 10**12
    FINNEY = 10**15
    ETHER = 10**18
    KETHER = 10**21
    METHER = 10**24
    GETHER = 10**27

    @classmethod
    def parse(cls, name: Union[str, "Unit"]) -> "Unit":
        if isinstance(name, Unit):
            return name
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown unit: {name!r}") from None


def to_wei(amount: Union[int, str, Decimal], unit: Union[str, Unit] = Unit.ETHER) -> int:
    factor = Unit.parse(unit).value
    with localcontext() as ctx:
        ctx.prec = 100
        try:
            value = Decimal(str(amount)) * factor
        except InvalidOperation:
            raise ValueError(f"Invalid amount: {amount!r}") from None
    if not value.is_finite():
        raise ValueError(f"Invalid amount: {amount!r}")
    if value != value.to_integral_value():
        raise ValueError(f"Non-integral wei value: {amount} {Unit.parse(unit).name.lower()}")
    if value < 0:
        raise ValueError(f"Negative amount: {amount}")
    return int(value)


def from_wei(amount: int, unit: Union[str, Unit] = Unit.ETHER) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = 100
        return Decimal(amount) / Decimal(Unit.parse(unit).value)


def format_ether(amount_wei: int) -> str:
    return f"{from_wei(amount_wei).normalize():f} ETH"


def keystore_timestamp(now: datetime | None = None) -> str:
    # Same shape geth uses in keystore file names
    now = now or datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H-%M-%S.") + f"{now.microsecond * 1000:09d}Z"
