"""
Pytest configuration and fixtures for dogewallet tests.
"""

import pytest
from coincurve import PrivateKey
from dogecore.crypto import hash160

from dogewallet.wallet.script import build_p2pkh
from dogewallet.wallet.transaction import Outpoint, Transaction, TxIn, TxOut


@pytest.fixture
def test_mnemonic() -> str:
    """Test mnemonic (BIP39 test vector)"""
    return (
        "abandon abandon abandon abandon abandon abandon "
        "abandon abandon abandon abandon abandon about"
    )


@pytest.fixture
def test_private_key() -> PrivateKey:
    """Fixed ECDSA private key so signatures are reproducible."""
    return PrivateKey(bytes.fromhex("4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"))


@pytest.fixture
def other_private_key() -> PrivateKey:
    return PrivateKey(bytes.fromhex("11" * 32))


@pytest.fixture
def test_pubkey(test_private_key: PrivateKey) -> bytes:
    """Get compressed public key from test private key."""
    return test_private_key.public_key.format(compressed=True)


@pytest.fixture
def p2pkh_script(test_pubkey: bytes) -> bytes:
    """scriptPubKey paying to the test key."""
    return build_p2pkh(hash160(test_pubkey))


@pytest.fixture
def unsigned_tx() -> Transaction:
    """Two inputs, two outputs, nothing signed."""
    return Transaction(
        version=1,
        vin=[
            TxIn(Outpoint(bytes.fromhex("aa" * 32), 0)),
            TxIn(Outpoint(bytes.fromhex("bb" * 32), 1)),
        ],
        vout=[
            TxOut(150_000_000, build_p2pkh(bytes(20))),
            TxOut(50_000_000, build_p2pkh(b"\x01" * 20)),
        ],
        locktime=0,
    )
