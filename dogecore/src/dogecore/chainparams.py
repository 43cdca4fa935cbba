"""
Dogecoin network parameter tables.

Address, WIF and extended-key version bytes for each supported network,
plus lookup helpers that recover the network from an encoded string.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import base58


class UnknownNetworkError(Exception):
    """Raised when an encoded string carries no known network prefix."""

    pass


class NetworkType(str, Enum):
    MAINNET = "mainnet"
    TESTNET = "testnet"
    REGTEST = "regtest"


@dataclass(frozen=True)
class ChainParams:
    """Version bytes and derivation constants for one network."""

    name: str
    network: NetworkType
    b58prefix_pubkey_address: int
    b58prefix_script_address: int
    b58prefix_secret_address: int
    b58prefix_bip32_privkey_address: int
    b58prefix_bip32_pubkey_address: int
    bech32_hrp: str
    bip44_coin_type: int

    @property
    def is_testnet(self) -> bool:
        return self.network != NetworkType.MAINNET


MAINNET = ChainParams(
    name="main",
    network=NetworkType.MAINNET,
    b58prefix_pubkey_address=0x1E,
    b58prefix_script_address=0x16,
    b58prefix_secret_address=0x9E,
    b58prefix_bip32_privkey_address=0x02FAC398,  # dgpv
    b58prefix_bip32_pubkey_address=0x02FACAFD,  # dgub
    bech32_hrp="doge",
    bip44_coin_type=3,
)

TESTNET = ChainParams(
    name="test",
    network=NetworkType.TESTNET,
    b58prefix_pubkey_address=0x71,
    b58prefix_script_address=0xC4,
    b58prefix_secret_address=0xF1,
    b58prefix_bip32_privkey_address=0x04358394,  # tprv
    b58prefix_bip32_pubkey_address=0x043587CF,  # tpub
    bech32_hrp="tdge",
    bip44_coin_type=1,
)

REGTEST = ChainParams(
    name="regtest",
    network=NetworkType.REGTEST,
    b58prefix_pubkey_address=0x6F,
    b58prefix_script_address=0xC4,
    b58prefix_secret_address=0xEF,
    b58prefix_bip32_privkey_address=0x04358394,
    b58prefix_bip32_pubkey_address=0x043587CF,
    bech32_hrp="dcrt",
    bip44_coin_type=1,
)

# Lookup order matters: testnet and regtest share several prefixes
ALL_CHAINS: tuple[ChainParams, ...] = (MAINNET, TESTNET, REGTEST)


def get_chain(network: NetworkType | str) -> ChainParams:
    """Get chain parameters for a network name."""
    network = NetworkType(network)
    for chain in ALL_CHAINS:
        if chain.network == network:
            return chain
    raise UnknownNetworkError(f"No parameters for network: {network}")


def select_chain(is_testnet: bool) -> ChainParams:
    return TESTNET if is_testnet else MAINNET


def chain_from_b58_prefix(encoded: str) -> ChainParams:
    """
    Determine the network of a base58check string.

    Works for P2PKH/P2SH addresses, WIF private keys and extended keys.

    Raises:
        UnknownNetworkError: If the string does not decode or its version
            bytes match no known network.
    """
    try:
        payload = base58.b58decode_check(encoded)
    except ValueError as e:
        raise UnknownNetworkError(f"Not a valid base58check string: {e}") from e

    if len(payload) == 78:
        version = int.from_bytes(payload[:4], "big")
        for chain in ALL_CHAINS:
            if version in (
                chain.b58prefix_bip32_privkey_address,
                chain.b58prefix_bip32_pubkey_address,
            ):
                return chain
    elif payload:
        version = payload[0]
        for chain in ALL_CHAINS:
            if version in (
                chain.b58prefix_pubkey_address,
                chain.b58prefix_script_address,
                chain.b58prefix_secret_address,
            ):
                return chain

    raise UnknownNetworkError("Unknown base58 prefix")
