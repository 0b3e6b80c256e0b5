"""
Chain - on-chain interaction layer for ethdemo.

Provides JSON-RPC client, ABI codec, gas providers, transaction manager
and event decoding for any EVM JSON-RPC node.

Uses httpx + eth-account + eth-abi instead of the heavyweight web3.py.
"""
