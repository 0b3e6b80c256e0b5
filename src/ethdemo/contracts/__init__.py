"""
Contracts - typed bindings for the sample Solidity contracts in contracts/.
"""
