"""
Sign and verify arbitrary messages with a Dogecoin key.

The digest is SHA256(SHA256(utf8(message))); the signature travels as
base64-encoded DER. Verification recovers the signer's public key and
requires its P2PKH address to equal the claimed address.
"""

from __future__ import annotations

import re

from coincurve import PrivateKey
from dogecore.chainparams import UnknownNetworkError, chain_from_b58_prefix
from dogecore.crypto import (
    CryptoError,
    SecretBytes,
    b64_decode,
    b64_encode,
    der_to_compact,
    hash256,
    recover_pubkey,
    sign_der,
    verify_der,
)
from dogecore.keys import InvalidKeyError, decode_wif, load_private_key, pubkey_to_p2pkh_address
from loguru import logger

_HEX_KEY = re.compile(r"^[0-9a-fA-F]{64}$")


def message_hash(message: str) -> bytes:
    return hash256(message.encode("utf-8"))


def load_message_key(privkey: str) -> PrivateKey:
    """
    Accept a private key as 64 hex characters or as WIF on any network.

    Raises:
        InvalidKeyError: If the key cannot be decoded or is out of range.
    """
    if _HEX_KEY.match(privkey):
        with SecretBytes(bytes.fromhex(privkey)) as secret:
            return load_private_key(secret.raw)
    try:
        chain = chain_from_b58_prefix(privkey)
    except UnknownNetworkError as e:
        raise InvalidKeyError(f"Unrecognised private key encoding: {e}") from e
    secret, _ = decode_wif(privkey, chain)
    return load_private_key(secret)


def sign_message_with_private_key(privkey: str, message: str) -> str:
    """
    Sign a message, returning the base64 DER signature.

    Raises:
        InvalidKeyError: If privkey is not a valid key.
    """
    key = load_message_key(privkey)
    digest = message_hash(message)
    return b64_encode(sign_der(key, digest))


def verify_message(address: str, signature: str, message: str) -> bool:
    """
    Check that signature over message was made by the key behind address.

    Any failing stage (decode, recovery, signature check, address mismatch)
    yields False.
    """
    if not address or not signature:
        return False

    try:
        chain = chain_from_b58_prefix(address)
        sig_der = b64_decode(signature)
        sig_compact = der_to_compact(sig_der)
    except (UnknownNetworkError, CryptoError) as e:
        logger.debug(f"Message verification failed: {e}")
        return False

    digest = message_hash(message)

    # DER carries no recovery id, so try each candidate
    for recid in range(4):
        try:
            pubkey = recover_pubkey(sig_compact, digest, recid)
        except CryptoError:
            continue
        if not verify_der(pubkey, digest, sig_der):
            continue
        if pubkey_to_p2pkh_address(pubkey, chain) == address:
            return True

    logger.debug("Message verification failed: no recovered key matches address")
    return False
