"""
dogecore - Core library for Dogecoin wallet components

Provides network parameters, hashing, key and address primitives.
"""

__version__ = "0.3.0"

from dogecore.chainparams import (
    MAINNET,
    REGTEST,
    TESTNET,
    ChainParams,
    NetworkType,
    UnknownNetworkError,
    chain_from_b58_prefix,
    get_chain,
    select_chain,
)
from dogecore.crypto import CryptoError, SecretBytes, hash160, hash256, sha256
from dogecore.keys import (
    AddressError,
    AddressKind,
    InvalidKeyError,
    decode_address,
    decode_wif,
    encode_wif,
    generate_private_key,
    private_key_is_valid,
    pubkey_to_p2pkh_address,
)

__all__ = [
    "AddressError",
    "AddressKind",
    "ChainParams",
    "CryptoError",
    "InvalidKeyError",
    "MAINNET",
    "NetworkType",
    "REGTEST",
    "SecretBytes",
    "TESTNET",
    "UnknownNetworkError",
    "chain_from_b58_prefix",
    "decode_address",
    "decode_wif",
    "encode_wif",
    "generate_private_key",
    "get_chain",
    "hash160",
    "hash256",
    "private_key_is_valid",
    "pubkey_to_p2pkh_address",
    "select_chain",
    "sha256",
]
