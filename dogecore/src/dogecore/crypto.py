"""
Cryptographic primitives for Dogecoin wallets.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac

from coincurve import PrivateKey, PublicKey
from coincurve.ecdsa import cdata_to_der, der_to_cdata, deserialize_compact, serialize_compact

COMPACT_SIGNATURE_SIZE = 64
RECOVERABLE_SIGNATURE_SIZE = 65


class CryptoError(Exception):
    pass


class SecretBytes:
    """
    Mutable holder for secret material that is wiped on release.

    Use as a context manager; the buffer is overwritten with zeros when the
    block exits, whether or not it raised.

        with SecretBytes(seed) as secret:
            node = HDNode.from_seed(secret.raw)
    """

    def __init__(self, data: bytes | bytearray):
        self._buf = bytearray(data)

    def __enter__(self) -> SecretBytes:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.wipe()

    def __len__(self) -> int:
        return len(self._buf)

    def __repr__(self) -> str:
        return f"SecretBytes(<{len(self._buf)} bytes>)"

    @property
    def raw(self) -> bytes:
        return bytes(self._buf)

    @property
    def wiped(self) -> bool:
        return not any(self._buf)

    def wipe(self) -> None:
        for i in range(len(self._buf)):
            self._buf[i] = 0


def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def hash256(data: bytes) -> bytes:
    """SHA256(SHA256(data))"""
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()


def hash160(data: bytes) -> bytes:
    """RIPEMD160(SHA256(data))"""
    h = hashlib.new("ripemd160")
    h.update(hashlib.sha256(data).digest())
    return h.digest()


def hmac_sha512(key: bytes, data: bytes) -> bytes:
    return hmac.new(key, data, hashlib.sha512).digest()


def b64_encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def b64_decode(text: str) -> bytes:
    """Strict base64 decode; raises CryptoError on malformed input."""
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise CryptoError(f"Failed to decode base64: {e}") from e


def sign_recoverable(private_key: PrivateKey, digest: bytes) -> bytes:
    """
    Sign a 32-byte digest producing a 65-byte recoverable signature.

    Layout is r (32) || s (32) || recid (1). libsecp256k1 always emits
    low-S signatures.
    """
    if len(digest) != 32:
        raise CryptoError(f"Digest must be 32 bytes, got {len(digest)}")
    return private_key.sign_recoverable(digest, hasher=None)


def sign_der(private_key: PrivateKey, digest: bytes) -> bytes:
    """Sign a 32-byte digest producing a low-S DER signature."""
    if len(digest) != 32:
        raise CryptoError(f"Digest must be 32 bytes, got {len(digest)}")
    return private_key.sign(digest, hasher=None)


def compact_to_der(compact: bytes) -> bytes:
    """Convert a 64-byte r||s signature (or 65-byte recoverable) to DER."""
    if len(compact) not in (COMPACT_SIGNATURE_SIZE, RECOVERABLE_SIGNATURE_SIZE):
        raise CryptoError(f"Invalid compact signature length: {len(compact)}")
    return cdata_to_der(deserialize_compact(compact[:COMPACT_SIGNATURE_SIZE]))


def der_to_compact(der: bytes) -> bytes:
    """Convert a DER signature to its 64-byte r||s form."""
    try:
        return serialize_compact(der_to_cdata(der))
    except ValueError as e:
        raise CryptoError(f"Invalid DER signature: {e}") from e


def recover_pubkey(
    compact: bytes, digest: bytes, recid: int, compressed: bool = True
) -> bytes:
    """Recover the signer's public key from a compact signature and recovery id."""
    if len(compact) != COMPACT_SIGNATURE_SIZE:
        raise CryptoError(f"Invalid compact signature length: {len(compact)}")
    if not 0 <= recid <= 3:
        raise CryptoError(f"Invalid recovery id: {recid}")
    try:
        pubkey = PublicKey.from_signature_and_message(
            compact + bytes([recid]), digest, hasher=None
        )
    except Exception as e:
        raise CryptoError(f"Public key recovery failed: {e}") from e
    return pubkey.format(compressed=compressed)


def verify_der(pubkey_bytes: bytes, digest: bytes, signature_der: bytes) -> bool:
    """Verify a DER signature over a pre-hashed 32-byte digest."""
    try:
        return PublicKey(pubkey_bytes).verify(signature_der, digest, hasher=None)
    except Exception:
        return False
