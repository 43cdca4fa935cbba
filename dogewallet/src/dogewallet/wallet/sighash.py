"""
Signature hash computation for legacy and witness v0 inputs.
"""

from __future__ import annotations

import struct
from enum import Enum, IntFlag

from dogecore.crypto import hash256

from dogewallet.wallet.script import ScriptError, strip_codeseparators
from dogewallet.wallet.transaction import Transaction, TxOut, amount_in_range, encode_var_bytes


class SighashError(Exception):
    pass


class SigHashType(IntFlag):
    ALL = 1
    NONE = 2
    SINGLE = 3
    ANYONECANPAY = 0x80


class SigVersion(Enum):
    BASE = 0
    WITNESS_V0 = 1


def base_type(hash_type: int) -> int:
    return hash_type & 0x1F


def _legacy_preimage(
    tx: Transaction, subscript: bytes, input_index: int, hash_type: int
) -> bytes:
    # Work on a copy; the caller's transaction is never touched
    view = tx.copy()
    target = base_type(hash_type)

    for i, txin in enumerate(view.vin):
        txin.script_sig = subscript if i == input_index else b""
        txin.witness_stack = []

    if target == SigHashType.NONE:
        view.vout = []
        for i, txin in enumerate(view.vin):
            if i != input_index:
                txin.sequence = 0
    elif target == SigHashType.SINGLE:
        # Earlier outputs are blanked to value -1 with an empty script
        view.vout = [TxOut(-1, b"") for _ in range(input_index)] + [view.vout[input_index]]
        for i, txin in enumerate(view.vin):
            if i != input_index:
                txin.sequence = 0

    if hash_type & SigHashType.ANYONECANPAY:
        view.vin = [view.vin[input_index]]

    return view.serialize(allow_witness=False) + struct.pack("<i", hash_type)


def _witness_v0_preimage(
    tx: Transaction, script_code: bytes, input_index: int, hash_type: int, amount: int
) -> bytes:
    """BIP143 digest pre-image."""
    anyone_can_pay = bool(hash_type & SigHashType.ANYONECANPAY)
    target = base_type(hash_type)
    zero = bytes(32)

    hash_prevouts = zero
    if not anyone_can_pay:
        hash_prevouts = hash256(b"".join(txin.prevout.serialize() for txin in tx.vin))

    hash_sequence = zero
    if not anyone_can_pay and target not in (SigHashType.SINGLE, SigHashType.NONE):
        hash_sequence = hash256(b"".join(struct.pack("<I", txin.sequence) for txin in tx.vin))

    hash_outputs = zero
    if target not in (SigHashType.SINGLE, SigHashType.NONE):
        hash_outputs = hash256(b"".join(txout.serialize() for txout in tx.vout))
    elif target == SigHashType.SINGLE and input_index < len(tx.vout):
        hash_outputs = hash256(tx.vout[input_index].serialize())

    txin = tx.vin[input_index]
    return (
        struct.pack("<i", tx.version)
        + hash_prevouts
        + hash_sequence
        + txin.prevout.serialize()
        + encode_var_bytes(script_code)
        + struct.pack("<q", amount)
        + struct.pack("<I", txin.sequence)
        + hash_outputs
        + struct.pack("<I", tx.locktime)
        + struct.pack("<i", hash_type)
    )


def signature_hash(
    tx: Transaction,
    subscript: bytes,
    input_index: int,
    hash_type: int = SigHashType.ALL,
    amount: int = 0,
    sig_version: SigVersion = SigVersion.BASE,
) -> bytes:
    """
    Compute the 32-byte digest a signature for one input commits to.

    Args:
        tx: Transaction being signed (not modified)
        subscript: Script of the output being spent (scriptCode for witness v0)
        input_index: Index of the input being signed
        hash_type: SIGHASH_* flags
        amount: Value of the spent output, used only by witness v0
        sig_version: Legacy or witness v0 algorithm

    Raises:
        SighashError: If input_index is out of range, SINGLE has no matching
            output (legacy), the subscript cannot be parsed or an
            amount is negative or exceeds int64.
    """
    if not 0 <= input_index < len(tx.vin):
        raise SighashError(f"Input index {input_index} out of range ({len(tx.vin)} inputs)")
    if not all(amount_in_range(txout.value) for txout in tx.vout):
        raise SighashError("Output value out of range")

    if sig_version == SigVersion.WITNESS_V0:
        if not amount_in_range(amount):
            raise SighashError(f"Spent amount out of range: {amount}")
        return hash256(_witness_v0_preimage(tx, subscript, input_index, hash_type, amount))

    if base_type(hash_type) == SigHashType.SINGLE and input_index >= len(tx.vout):
        raise SighashError(f"SIGHASH_SINGLE with no output at index {input_index}")

    try:
        subscript = strip_codeseparators(subscript)
    except ScriptError as e:
        raise SighashError(f"Malformed subscript: {e}") from e

    return hash256(_legacy_preimage(tx, subscript, input_index, hash_type))
