__all__ = [
    # RPC
    "RpcError",
    "RpcTransportError",
    "client_version",
    "get_balance",
    "get_chain_id",
    "get_nonce",
    "wait_for_receipt",
    # ABI codec
    "AbiError",
    "decode_function_result",
    "decode_log",
    "encode_function_call",
    "event_topic",
    # Gas
    "DefaultGasProvider",
    "GasProvider",
    "NodeGasProvider",
    "StaticGasProvider",
    # Transactions
    "ReceiptTimeoutError",
    "SendResult",
    "TransactionError",
    "TransactionFailedError",
    "TransactionManager",
    "deploy_contract",
    "read_contract",
    "send_contract_tx",
    "send_funds",
    # Events
    "DecodedEvent",
    "events_from_receipt",
    "query_events",
    # Contracts
    "Greeter",
    "ModifiedEvent",
    # Wallet
    "WalletError",
    "create_keystore",
    "generate_eoa",
    "get_address",
    "load_credentials",
    "load_private_key",
    # Units
    "Unit",
    "from_wei",
    "to_wei",
]

from .chain.codec import (
    AbiError,
    decode_function_result,
    decode_log,
    encode_function_call,
    event_topic,
)
from .chain.events import DecodedEvent, events_from_receipt, query_events
from .chain.gas import DefaultGasProvider, GasProvider, NodeGasProvider, StaticGasProvider
from .chain.rpc import (
    RpcError,
    RpcTransportError,
    client_version,
    get_balance,
    get_chain_id,
    get_nonce,
    wait_for_receipt,
)
from .chain.tx import (
    ReceiptTimeoutError,
    SendResult,
    TransactionError,
    TransactionFailedError,
    TransactionManager,
    deploy_contract,
    read_contract,
    send_contract_tx,
    send_funds,
)
from .contracts.greeter import Greeter, ModifiedEvent
from .utils import Unit, from_wei, to_wei
from .wallet.keys import (
    WalletError,
    create_keystore,
    generate_eoa,
    get_address,
    load_credentials,
    load_private_key,
)
