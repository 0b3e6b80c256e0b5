"""
Wallet - credentials for signing transactions.

Keystore v3 files (via eth-account) and raw private keys from ~/.ethdemo/.env.
"""
