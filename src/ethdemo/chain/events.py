"""
Events - decode contract event logs.

Logs come either from a transaction receipt or from an eth_getLogs query.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from ..utils import hex_to_int, to_checksum_address
from .codec import AbiError, decode_log, event_topic, find_event
from .rpc import get_logs

logger = logging.getLogger(__name__)


@dataclass
class DecodedEvent:
    name: str
    args: dict[str, Any]
    indexed: dict[str, bytes] = field(default_factory=dict)
    address: Optional[str] = None
    log_index: Optional[int] = None
    transaction_hash: Optional[str] = None
    block_number: Optional[int] = None


def _to_event(event_abi: dict, log: dict) -> DecodedEvent:
    args, indexed = decode_log(event_abi, log)
    return DecodedEvent(
        name=event_abi["name"],
        args=args,
        indexed=indexed,
        address=log.get("address"),
        log_index=hex_to_int(log["logIndex"]) if log.get("logIndex") is not None else None,
        transaction_hash=log.get("transactionHash"),
        block_number=hex_to_int(log["blockNumber"]) if log.get("blockNumber") is not None else None,
    )


def events_from_receipt(
    abi: list,
    event_name: str,
    receipt: dict,
    address: Optional[str] = None,
) -> list[DecodedEvent]:
    """
    Decode every ``event_name`` log in a transaction receipt.

    Logs with a different topic0 (other events, other contracts) are skipped.
    When ``address`` is given only logs emitted by that contract count.
    """
    event_abi = find_event(abi, event_name)
    topic0 = event_topic(event_abi).lower()
    wanted = address.lower() if address else None

    events = []
    for log in receipt.get("logs", []):
        topics = log.get("topics", [])
        if not topics or topics[0].lower() != topic0:
            continue
        if wanted and str(log.get("address", "")).lower() != wanted:
            continue
        events.append(_to_event(event_abi, log))
    return events


def _block_param(block: Union[int, str]) -> str:
    return hex(block) if isinstance(block, int) else block


def query_events(
    abi: list,
    event_name: str,
    address: str,
    from_block: Union[int, str] = "earliest",
    to_block: Union[int, str] = "latest",
    rpc_url: Optional[str] = None,
) -> list[DecodedEvent]:
    """
    Fetch and decode ``event_name`` logs emitted by a contract (eth_getLogs).

    Raises:
        AbiError: If a returned log cannot be decoded
    """
    event_abi = find_event(abi, event_name)
    log_filter = {
        "address": to_checksum_address(address),
        "topics": [event_topic(event_abi)],
        "fromBlock": _block_param(from_block),
        "toBlock": _block_param(to_block),
    }
    logs = get_logs(log_filter, rpc_url=rpc_url)
    logger.debug("eth_getLogs returned %d %s logs", len(logs), event_name)

    events = []
    for log in logs:
        try:
            events.append(_to_event(event_abi, log))
        except AbiError as exc:
            raise AbiError(f"Log {log.get('transactionHash')}:{log.get('logIndex')}: {exc}") from exc
    return events
