"""Tests for the Greeter contract binding against the in-memory node."""

from __future__ import annotations

from pathlib import Path

import pytest

from ethdemo.chain import artifacts
from ethdemo.chain.codec import AbiError
from ethdemo.chain.gas import DEFAULT_GAS_LIMIT, DEFAULT_GAS_PRICE, StaticGasProvider
from ethdemo.chain.tx import TransactionFailedError, TransactionManager
from ethdemo.contracts.greeter import Greeter, ModifiedEvent
from ethdemo.utils import keccak256

from conftest import GREETER_BYTECODE, checksum


@pytest.fixture()
def greeter(manager: TransactionManager) -> Greeter:
    return Greeter.deploy(manager, "test", bytecode=GREETER_BYTECODE)


class TestDeploy:
    def test_deploy(self, greeter: Greeter, fake_node) -> None:
        assert greeter.address == checksum(greeter.deploy_result.contract_address)
        assert greeter.deploy_result.status == 1
        assert fake_node.greetings[greeter.address.lower()] == "test"

    def test_default_gas(self, greeter: Greeter, fake_node) -> None:
        assert fake_node.sent[0]["gasPrice"] == DEFAULT_GAS_PRICE
        assert fake_node.sent[0]["gas"] == DEFAULT_GAS_LIMIT

    def test_bytecode_from_artifact(
        self, manager: TransactionManager, fake_node, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (tmp_path / "Greeter.bin").write_text(GREETER_BYTECODE[2:] + "\n", encoding="utf-8")
        monkeypatch.setenv("ETHDEMO_CONTRACTS_DIR", str(tmp_path))
        artifacts.load_bytecode.cache_clear()
        try:
            contract = Greeter.deploy(manager, "from artifact")
        finally:
            artifacts.load_bytecode.cache_clear()
        assert contract.greet() == "from artifact"

    def test_bytecode_compiled_from_bundled_source(
        self, manager: TransactionManager, fake_node, fake_solc
    ) -> None:
        contract = Greeter.deploy(manager, "compiled")
        assert contract.greet() == "compiled"
        assert len(fake_solc.compiled) == 1

    def test_missing_artifact(
        self, manager: TransactionManager, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("ETHDEMO_CONTRACTS_DIR", str(tmp_path))
        artifacts.load_bytecode.cache_clear()
        try:
            with pytest.raises(FileNotFoundError):
                Greeter.deploy(manager, "nope")
        finally:
            artifacts.load_bytecode.cache_clear()


class TestGreeting:
    def test_greet(self, greeter: Greeter) -> None:
        assert greeter.greet() == "test"

    def test_new_greeting(self, greeter: Greeter, fake_node) -> None:
        result = greeter.new_greeting("Well hello again")
        assert result.status == 1
        assert greeter.greet() == "Well hello again"
        assert fake_node.sent[-1]["to"] == greeter.address.lower()

    def test_new_greeting_uses_contract_gas(self, manager: TransactionManager, fake_node) -> None:
        contract = Greeter.deploy(manager, "test", StaticGasProvider(5, 200_000), bytecode=GREETER_BYTECODE)
        contract.new_greeting("cheap")
        assert fake_node.sent[-1]["gasPrice"] == 5
        assert fake_node.sent[-1]["gas"] == 200_000

    def test_load_existing(self, greeter: Greeter, manager: TransactionManager) -> None:
        again = Greeter.load(greeter.address.lower(), manager)
        assert again.address == greeter.address
        assert again.greet() == "test"

    def test_failed_update_keeps_greeting(self, greeter: Greeter, fake_node) -> None:
        fake_node.revert_next = True
        with pytest.raises(TransactionFailedError):
            greeter.new_greeting("never stored")
        assert greeter.greet() == "test"

    def test_kill(self, greeter: Greeter) -> None:
        assert greeter.kill().status == 1
        # No code at the address any more: eth_call returns empty data
        with pytest.raises(AbiError, match="Empty return data"):
            greeter.greet()


class TestModifiedEvents:
    def test_from_receipt(self, greeter: Greeter) -> None:
        result = greeter.new_greeting("Well hello again")
        [event] = greeter.get_modified_events(result)
        assert isinstance(event, ModifiedEvent)
        assert event.old_greeting == "test"
        assert event.new_greeting == "Well hello again"
        assert event.old_greeting_idx == keccak256(b"test")
        assert event.new_greeting_idx == keccak256(b"Well hello again")
        assert event.transaction_hash == result.tx_hash
        assert event.block_number == result.block_number

    def test_from_raw_receipt(self, greeter: Greeter) -> None:
        result = greeter.new_greeting("x")
        assert len(greeter.get_modified_events(result.receipt)) == 1

    def test_no_receipt(self, greeter: Greeter) -> None:
        result = greeter.new_greeting("x")
        result.receipt = None
        assert greeter.get_modified_events(result) == []

    def test_query_history(self, greeter: Greeter) -> None:
        greeter.new_greeting("one")
        greeter.new_greeting("two")
        events = greeter.modified_events()
        assert [(e.old_greeting, e.new_greeting) for e in events] == [("test", "one"), ("one", "two")]
        assert events[0].block_number < events[1].block_number

    def test_query_range(self, greeter: Greeter, fake_node) -> None:
        greeter.new_greeting("one")
        second = greeter.new_greeting("two")
        greeter.modified_events(from_block=second.block_number, to_block=second.block_number)
        # The fake node ignores block bounds, so only the filter is checked
        method, params = fake_node.calls[-1]
        assert method == "eth_getLogs"
        assert params[0]["fromBlock"] == params[0]["toBlock"] == hex(second.block_number)
        assert params[0]["address"] == greeter.address
