"""
Private key, public key and address primitives.

WIF and P2PKH/P2SH addresses are base58check strings whose version byte
comes from the chain parameters; witness addresses use bech32.
"""

from __future__ import annotations

import secrets
from enum import Enum

import base58
import bech32
from coincurve import PrivateKey, PublicKey

from dogecore.chainparams import ChainParams
from dogecore.constants import SECP256K1_N
from dogecore.crypto import SecretBytes, hash160


class InvalidKeyError(Exception):
    pass


class AddressError(Exception):
    pass


class AddressKind(str, Enum):
    P2PKH = "p2pkh"
    P2SH = "p2sh"
    P2WPKH = "p2wpkh"
    P2WSH = "p2wsh"


def private_key_is_valid(secret: bytes) -> bool:
    """A private key is valid when it is 32 bytes and in [1, n-1]."""
    if len(secret) != 32:
        return False
    return 0 < int.from_bytes(secret, "big") < SECP256K1_N


def generate_private_key() -> PrivateKey:
    """Generate a new random private key from the OS CSPRNG."""
    while True:
        with SecretBytes(secrets.token_bytes(32)) as candidate:
            if private_key_is_valid(candidate.raw):
                return PrivateKey(candidate.raw)


def load_private_key(secret: bytes) -> PrivateKey:
    if not private_key_is_valid(secret):
        raise InvalidKeyError("Private key out of range")
    return PrivateKey(secret)


def pubkey_is_valid(pubkey_bytes: bytes) -> bool:
    if len(pubkey_bytes) == 33 and pubkey_bytes[0] not in (0x02, 0x03):
        return False
    if len(pubkey_bytes) == 65 and pubkey_bytes[0] != 0x04:
        return False
    if len(pubkey_bytes) not in (33, 65):
        return False
    try:
        PublicKey(pubkey_bytes)
    except ValueError:
        return False
    return True


def encode_wif(secret: bytes, chain: ChainParams, compressed: bool = True) -> str:
    """Encode a 32-byte private key as WIF for the given network."""
    if not private_key_is_valid(secret):
        raise InvalidKeyError("Private key out of range")
    payload = bytes([chain.b58prefix_secret_address]) + secret
    if compressed:
        payload += b"\x01"
    return base58.b58encode_check(payload).decode("ascii")


def decode_wif(wif: str, chain: ChainParams) -> tuple[bytes, bool]:
    """
    Decode a WIF string.

    Returns:
        (secret, compressed)

    Raises:
        InvalidKeyError: On checksum, prefix, length or range failure.
    """
    try:
        payload = base58.b58decode_check(wif)
    except ValueError as e:
        raise InvalidKeyError(f"Invalid WIF encoding: {e}") from e

    with SecretBytes(payload) as buf:
        raw = buf.raw
        if not raw or raw[0] != chain.b58prefix_secret_address:
            raise InvalidKeyError(f"WIF prefix does not match {chain.name} network")
        if len(raw) == 34 and raw[33] == 0x01:
            compressed = True
        elif len(raw) == 33:
            compressed = False
        else:
            raise InvalidKeyError(f"Invalid WIF payload length: {len(raw)}")
        secret = raw[1:33]

    if not private_key_is_valid(secret):
        raise InvalidKeyError("Private key out of range")
    return secret, compressed


def pubkey_to_p2pkh_address(pubkey_bytes: bytes, chain: ChainParams) -> str:
    payload = bytes([chain.b58prefix_pubkey_address]) + hash160(pubkey_bytes)
    return base58.b58encode_check(payload).decode("ascii")


def hash160_to_p2sh_address(script_hash: bytes, chain: ChainParams) -> str:
    payload = bytes([chain.b58prefix_script_address]) + script_hash
    return base58.b58encode_check(payload).decode("ascii")


def pubkey_to_p2sh_p2wpkh_address(pubkey_bytes: bytes, chain: ChainParams) -> str:
    """P2SH-wrapped P2WPKH: the redeem script is OP_0 <hash160(pubkey)>."""
    redeem_script = b"\x00\x14" + hash160(pubkey_bytes)
    return hash160_to_p2sh_address(hash160(redeem_script), chain)


def pubkey_to_p2wpkh_address(pubkey_bytes: bytes, chain: ChainParams) -> str:
    if len(pubkey_bytes) != 33:
        raise AddressError(f"Invalid compressed pubkey length: {len(pubkey_bytes)}")
    result = bech32.encode(chain.bech32_hrp, 0, hash160(pubkey_bytes))
    if result is None:
        raise AddressError("Failed to encode P2WPKH address")
    return result


def decode_address(address: str, chain: ChainParams) -> tuple[AddressKind, bytes]:
    """
    Decode an address into its kind and hash payload.

    Raises:
        AddressError: On bad checksum, unknown prefix or wrong network.
    """
    if address.lower().startswith(chain.bech32_hrp + "1"):
        witver, witprog = bech32.decode(chain.bech32_hrp, address)
        if witver is None or witprog is None:
            raise AddressError(f"Invalid bech32 address: {address}")
        program = bytes(witprog)
        if witver == 0 and len(program) == 20:
            return AddressKind.P2WPKH, program
        if witver == 0 and len(program) == 32:
            return AddressKind.P2WSH, program
        raise AddressError(f"Unsupported witness version: {witver}")

    try:
        payload = base58.b58decode_check(address)
    except ValueError as e:
        raise AddressError(f"Invalid base58 address: {e}") from e

    if len(payload) != 21:
        raise AddressError(f"Invalid address payload length: {len(payload)}")

    version = payload[0]
    if version == chain.b58prefix_pubkey_address:
        return AddressKind.P2PKH, payload[1:]
    if version == chain.b58prefix_script_address:
        return AddressKind.P2SH, payload[1:]

    raise AddressError(f"Unknown address version for {chain.name}: {version:#x}")
