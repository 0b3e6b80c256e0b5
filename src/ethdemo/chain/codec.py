"""
ABI Codec - translate typed contract calls and event logs to and from
ABI-encoded binary payloads.

eth-abi does the actual type encoding; this module handles signatures,
selectors, overload lookup, topics and the result/event shapes.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError, EncodingError

from ..utils import bytes_to_hex, hex_to_bytes, keccak256

# Error(string) / Panic(uint256) revert selectors
ERROR_SELECTOR = bytes.fromhex("08c379a0")
PANIC_SELECTOR = bytes.fromhex("4e487b71")


class AbiError(ValueError):
    pass


def canonical_type(param: dict) -> str:
    """Canonical type string for an ABI parameter, expanding tuples."""
    typ = param["type"]
    if typ.startswith("tuple"):
        inner = ",".join(canonical_type(c) for c in param.get("components", []))
        return f"({inner}){typ[len('tuple'):]}"
    return typ


def input_types(entry: dict) -> list[str]:
    return [canonical_type(p) for p in entry.get("inputs", [])]


def output_types(entry: dict) -> list[str]:
    return [canonical_type(p) for p in entry.get("outputs", [])]


def signature(entry: dict) -> str:
    """e.g. ``newGreeting(string)``."""
    return f"{entry['name']}({','.join(input_types(entry))})"


def function_selector(entry_or_signature: Any) -> bytes:
    sig = entry_or_signature if isinstance(entry_or_signature, str) else signature(entry_or_signature)
    return keccak256(sig.encode("utf-8"))[:4]


def event_topic(entry_or_signature: Any) -> str:
    """topic0 of an event: 0x-prefixed keccak256 of its signature."""
    sig = entry_or_signature if isinstance(entry_or_signature, str) else signature(entry_or_signature)
    return bytes_to_hex(keccak256(sig.encode("utf-8")))


def find_function(abi: list, name: str, args: Optional[Sequence] = None) -> dict:
    """
    Find a function in the ABI.

    Overloads are told apart by argument count when ``args`` is given.

    Raises:
        AbiError: If no entry matches or the match is ambiguous
    """
    candidates = [e for e in abi if e.get("type") == "function" and e.get("name") == name]
    if not candidates:
        raise AbiError(f"Function {name} not found in ABI")
    if len(candidates) > 1 and args is not None:
        candidates = [e for e in candidates if len(e.get("inputs", [])) == len(args)]
    if len(candidates) != 1:
        raise AbiError(f"Function {name} is ambiguous or has no overload taking {len(args or [])} args")
    return candidates[0]


def find_event(abi: list, name: str) -> dict:
    for entry in abi:
        if entry.get("type") == "event" and entry.get("name") == name:
            return entry
    raise AbiError(f"Event {name} not found in ABI")


def find_constructor(abi: list) -> Optional[dict]:
    for entry in abi:
        if entry.get("type") == "constructor":
            return entry
    return None


def _encode_args(types: list[str], args: Sequence, what: str) -> bytes:
    if len(types) != len(args):
        raise AbiError(f"{what} expects {len(types)} args, got {len(args)}")
    if not types:
        return b""
    try:
        return encode(types, list(args))
    except (EncodingError, TypeError, ValueError) as exc:
        raise AbiError(f"Cannot encode args for {what}: {exc}") from exc


def encode_function_call(abi: list, function_name: str, args: Optional[Sequence] = None) -> str:
    """
    ABI-encode a function call.

    Returns:
        0x-prefixed hex encoded calldata
    """
    args = list(args or [])
    func = find_function(abi, function_name, args)
    encoded_args = _encode_args(input_types(func), args, signature(func))
    return bytes_to_hex(function_selector(func) + encoded_args)


def encode_constructor_args(abi: list, args: Optional[Sequence] = None) -> bytes:
    """ABI-encode constructor arguments (appended to creation bytecode)."""
    args = list(args or [])
    constructor = find_constructor(abi)
    if constructor is None:
        if args:
            raise AbiError("Constructor not found in ABI, but constructor args were provided")
        return b""
    return _encode_args(input_types(constructor), args, "constructor")


def decode_function_result(abi: list, function_name: str, data: str, args: Optional[Sequence] = None) -> Any:
    """
    ABI-decode a function call result.

    Returns:
        None when the function has no outputs, the value itself for a
        single output, otherwise a tuple

    Raises:
        AbiError: On empty or undecodable return data
    """
    func = find_function(abi, function_name, args)
    types = output_types(func)
    if not types:
        return None

    raw = hex_to_bytes(data or "0x")
    if not raw:
        raise AbiError(
            f"Empty return data for {signature(func)}: "
            f"no contract at address or call reverted"
        )

    try:
        decoded = decode(types, raw)
    except (DecodingError, ValueError) as exc:
        raise AbiError(f"Cannot decode result of {signature(func)}: {exc}") from exc

    if len(decoded) == 1:
        return decoded[0]
    return decoded


def decode_revert_reason(data: Optional[str]) -> Optional[str]:
    """Decode ``Error(string)`` / ``Panic(uint256)`` revert data, if present."""
    if not data or not isinstance(data, str):
        return None
    raw = hex_to_bytes(data)
    try:
        if raw[:4] == ERROR_SELECTOR:
            return decode(["string"], raw[4:])[0]
        if raw[:4] == PANIC_SELECTOR:
            return f"panic 0x{decode(['uint256'], raw[4:])[0]:02x}"
    except (DecodingError, ValueError):
        return None
    return None


def _is_hashed_in_topic(typ: str) -> bool:
    # Dynamic and composite indexed values are stored as keccak of their encoding
    return typ in ("string", "bytes") or typ.endswith("]") or typ.startswith("(")


def decode_log(event: dict, log: dict) -> tuple[dict[str, Any], dict[str, Any]]:
    """
    Decode a log entry against an event ABI.

    Returns:
        (args, indexed_raw)
        - args: every parameter by name; indexed strings/bytes/arrays carry
          their 32-byte topic because the original value is not recoverable
        - indexed_raw: the raw 32-byte topic for every indexed parameter

    Raises:
        AbiError: If the log does not belong to this event
    """
    topics = [hex_to_bytes(t) for t in log.get("topics", [])]
    if not event.get("anonymous"):
        if not topics or bytes_to_hex(topics[0]) != event_topic(event):
            raise AbiError(f"Log is not a {signature(event)} event")
        topics = topics[1:]

    params = event.get("inputs", [])
    names = [p.get("name") or f"_{i}" for i, p in enumerate(params)]
    indexed = [(n, p) for n, p in zip(names, params) if p.get("indexed")]
    plain = [(n, p) for n, p in zip(names, params) if not p.get("indexed")]

    if len(topics) != len(indexed):
        raise AbiError(
            f"{signature(event)} expects {len(indexed)} indexed topics, got {len(topics)}"
        )

    args: dict[str, Any] = {}
    indexed_raw: dict[str, bytes] = {}

    for (name, param), topic in zip(indexed, topics):
        typ = canonical_type(param)
        indexed_raw[name] = topic
        if _is_hashed_in_topic(typ):
            args[name] = topic
            continue
        try:
            args[name] = decode([typ], topic)[0]
        except (DecodingError, ValueError) as exc:
            raise AbiError(f"Cannot decode indexed {name}: {exc}") from exc

    if plain:
        try:
            values = decode(
                [canonical_type(p) for _, p in plain],
                hex_to_bytes(log.get("data") or "0x"),
            )
        except (DecodingError, ValueError) as exc:
            raise AbiError(f"Cannot decode data of {signature(event)}: {exc}") from exc
        for (name, _), value in zip(plain, values):
            args[name] = value

    return {name: args[name] for name in names}, indexed_raw
