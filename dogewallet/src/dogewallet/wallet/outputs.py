"""
Helpers that append standard outputs to a transaction.

Each helper returns True when an output was appended and False otherwise;
the transaction is left untouched on failure. Amounts must fit a
non-negative int64.
"""

from __future__ import annotations

from dogecore.chainparams import ChainParams
from dogecore.constants import MAX_OP_RETURN_DATA, MAX_PUZZLE_SIZE
from dogecore.crypto import hash160
from dogecore.keys import AddressError, pubkey_is_valid
from loguru import logger

from dogewallet.wallet.script import (
    ScriptError,
    address_to_script,
    build_null_data,
    build_p2pkh,
    build_p2sh,
    build_puzzle,
)
from dogewallet.wallet.transaction import Transaction, TxOut, amount_in_range


def _amount_ok(amount: int) -> bool:
    if not amount_in_range(amount):
        logger.debug(f"Output amount out of range: {amount}")
        return False
    return True


def add_address_out(tx: Transaction, chain: ChainParams, amount: int, address: str) -> bool:
    """Pay to a P2PKH, P2SH or witness address on the given network."""
    if not _amount_ok(amount):
        return False
    try:
        script = address_to_script(address, chain)
    except (AddressError, ScriptError) as e:
        logger.debug(f"Cannot pay to {address!r}: {e}")
        return False
    tx.vout.append(TxOut(amount, script))
    return True


def add_p2sh_hash160_out(tx: Transaction, amount: int, script_hash: bytes) -> bool:
    if not _amount_ok(amount):
        return False
    try:
        script = build_p2sh(script_hash)
    except ScriptError as e:
        logger.debug(f"Cannot build P2SH output: {e}")
        return False
    tx.vout.append(TxOut(amount, script))
    return True


def add_p2pkh_hash160_out(tx: Transaction, amount: int, pubkey_hash: bytes) -> bool:
    if not _amount_ok(amount):
        return False
    try:
        script = build_p2pkh(pubkey_hash)
    except ScriptError as e:
        logger.debug(f"Cannot build P2PKH output: {e}")
        return False
    tx.vout.append(TxOut(amount, script))
    return True


def add_p2pkh_out(tx: Transaction, amount: int, pubkey: bytes) -> bool:
    if not pubkey_is_valid(pubkey):
        logger.debug("Cannot build P2PKH output: invalid public key")
        return False
    return add_p2pkh_hash160_out(tx, amount, hash160(pubkey))


def add_data_out(tx: Transaction, amount: int, data: bytes) -> bool:
    """Append an OP_RETURN output carrying up to 80 bytes."""
    if not _amount_ok(amount):
        return False
    if len(data) > MAX_OP_RETURN_DATA:
        logger.debug(f"Data output too large: {len(data)} > {MAX_OP_RETURN_DATA}")
        return False
    tx.vout.append(TxOut(amount, build_null_data(data)))
    return True


def add_puzzle_out(tx: Transaction, amount: int, puzzle: bytes) -> bool:
    """Append an OP_HASH256 <puzzle> OP_EQUAL output."""
    if not _amount_ok(amount):
        return False
    if len(puzzle) > MAX_PUZZLE_SIZE:
        logger.debug(f"Puzzle output too large: {len(puzzle)} > {MAX_PUZZLE_SIZE}")
        return False
    tx.vout.append(TxOut(amount, build_puzzle(puzzle)))
    return True
