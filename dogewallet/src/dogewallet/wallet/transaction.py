"""
Dogecoin transaction data model and wire serialization.

Wire layout (all integers little-endian):
    version(4) | [marker 0x00, flag 0x01] | vin-count(varint) | inputs |
    vout-count(varint) | outputs | [witness stacks] | locktime(4)

Marker/flag and witness stacks are present only for witness serialization.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field

from dogecore.constants import (
    DEFAULT_SEQUENCE,
    DEFAULT_TX_VERSION,
    MAX_AMOUNT,
    MIN_TX_INPUT_SIZE,
    MIN_TX_OUTPUT_SIZE,
)
from dogecore.crypto import hash256

NULL_HASH = bytes(32)
NULL_INDEX = 0xFFFFFFFF

# Smallest value each CompactSize prefix may carry
_VARINT_MINIMUMS = {0xFD: (2, 0xFD), 0xFE: (4, 0x10000), 0xFF: (8, 0x100000000)}


class TransactionParseError(Exception):
    pass


def read_varint(data: bytes, offset: int) -> tuple[int, int]:
    """Read a CompactSize integer, returning (value, new_offset)."""
    if offset >= len(data):
        raise TransactionParseError("Unexpected end of data reading varint")
    first = data[offset]
    offset += 1

    if first < 0xFD:
        return first, offset
    size, minimum = _VARINT_MINIMUMS[first]
    value = int.from_bytes(read_bytes(data, offset, size), "little")
    if value < minimum:
        raise TransactionParseError(f"Non-canonical varint encoding of {value}")
    return value, offset + size


def amount_in_range(value: int) -> bool:
    """True for a koinu amount that serializes as a non-negative int64."""
    return 0 <= value <= MAX_AMOUNT


def encode_varint(value: int) -> bytes:
    if value < 0xFD:
        return bytes([value])
    if value <= 0xFFFF:
        return b"\xfd" + value.to_bytes(2, "little")
    if value <= 0xFFFFFFFF:
        return b"\xfe" + value.to_bytes(4, "little")
    return b"\xff" + value.to_bytes(8, "little")


def read_bytes(data: bytes, offset: int, length: int) -> bytes:
    if length < 0 or offset + length > len(data):
        raise TransactionParseError(
            f"Need {length} bytes at offset {offset}, only {len(data) - offset} available"
        )
    return data[offset : offset + length]


def read_var_bytes(data: bytes, offset: int) -> tuple[bytes, int]:
    """Read a varint length prefix followed by that many bytes."""
    length, offset = read_varint(data, offset)
    return read_bytes(data, offset, length), offset + length


def encode_var_bytes(data: bytes) -> bytes:
    return encode_varint(len(data)) + data


def _check_count(count: int, min_item_size: int, data: bytes, offset: int, what: str) -> None:
    # Counts are attacker-controlled; bound them by what the buffer can hold
    remaining = len(data) - offset
    if count * min_item_size > remaining:
        raise TransactionParseError(
            f"{what} count {count} exceeds what {remaining} remaining bytes can hold"
        )


@dataclass
class Outpoint:
    """Reference to a previous output: txid in internal byte order plus index."""

    hash: bytes = NULL_HASH
    index: int = NULL_INDEX

    def is_null(self) -> bool:
        return self.hash == NULL_HASH and self.index == NULL_INDEX

    def serialize(self) -> bytes:
        return self.hash + struct.pack("<I", self.index)

    @classmethod
    def from_txid(cls, txid: str, index: int) -> Outpoint:
        """Build from an RPC-style (display order) txid hex string."""
        return cls(hash=bytes.fromhex(txid)[::-1], index=index)


@dataclass
class TxIn:
    prevout: Outpoint = field(default_factory=Outpoint)
    script_sig: bytes = b""
    sequence: int = DEFAULT_SEQUENCE
    witness_stack: list[bytes] = field(default_factory=list)

    def copy(self) -> TxIn:
        return TxIn(
            prevout=Outpoint(self.prevout.hash, self.prevout.index),
            script_sig=self.script_sig,
            sequence=self.sequence,
            witness_stack=list(self.witness_stack),
        )


@dataclass
class TxOut:
    value: int = 0
    script_pubkey: bytes = b""

    def serialize(self) -> bytes:
        return struct.pack("<q", self.value) + encode_var_bytes(self.script_pubkey)

    def copy(self) -> TxOut:
        return TxOut(self.value, self.script_pubkey)


@dataclass
class Transaction:
    """
    A Dogecoin transaction.

    Input and output order is part of the signed content and is preserved
    through (de)serialization.
    """

    version: int = DEFAULT_TX_VERSION
    vin: list[TxIn] = field(default_factory=list)
    vout: list[TxOut] = field(default_factory=list)
    locktime: int = 0

    def copy(self) -> Transaction:
        """Deep copy: no list or witness stack is shared with the original."""
        return Transaction(
            version=self.version,
            vin=[txin.copy() for txin in self.vin],
            vout=[txout.copy() for txout in self.vout],
            locktime=self.locktime,
        )

    def has_witness(self) -> bool:
        return any(txin.witness_stack for txin in self.vin)

    def is_coinbase(self) -> bool:
        return len(self.vin) == 1 and self.vin[0].prevout.is_null()

    def serialize(self, allow_witness: bool = True) -> bytes:
        """
        Serialize to wire format.

        Witness marker, flag and stacks are written only when allow_witness
        is set and at least one input carries a non-empty witness stack.
        """
        with_witness = allow_witness and self.has_witness()

        parts = [struct.pack("<i", self.version)]
        if with_witness:
            parts.append(b"\x00\x01")

        parts.append(encode_varint(len(self.vin)))
        for txin in self.vin:
            parts.append(txin.prevout.serialize())
            parts.append(encode_var_bytes(txin.script_sig))
            parts.append(struct.pack("<I", txin.sequence))

        parts.append(encode_varint(len(self.vout)))
        for txout in self.vout:
            parts.append(txout.serialize())

        if with_witness:
            for txin in self.vin:
                parts.append(encode_varint(len(txin.witness_stack)))
                for item in txin.witness_stack:
                    parts.append(encode_var_bytes(item))

        parts.append(struct.pack("<I", self.locktime))
        return b"".join(parts)

    def hash(self) -> bytes:
        """
        Transaction id bytes in display order.

        Double SHA-256 of the non-witness serialization, reversed.
        """
        return hash256(self.serialize(allow_witness=False))[::-1]

    @property
    def txid(self) -> str:
        return self.hash().hex()

    @classmethod
    def from_bytes(cls, data: bytes, allow_witness: bool = True) -> Transaction:
        """Parse a transaction that must occupy the whole buffer."""
        tx, consumed = deserialize_transaction(data, allow_witness)
        if consumed != len(data):
            raise TransactionParseError(f"{len(data) - consumed} trailing bytes after transaction")
        return tx

    @classmethod
    def from_hex(cls, tx_hex: str, allow_witness: bool = True) -> Transaction:
        try:
            data = bytes.fromhex(tx_hex)
        except ValueError as e:
            raise TransactionParseError(f"Invalid transaction hex: {e}") from e
        return cls.from_bytes(data, allow_witness)


def _read_inputs(data: bytes, offset: int) -> tuple[list[TxIn], int]:
    count, offset = read_varint(data, offset)
    _check_count(count, MIN_TX_INPUT_SIZE, data, offset, "Input")
    vin: list[TxIn] = []

    for _ in range(count):
        prev_hash = read_bytes(data, offset, 32)
        offset += 32
        prev_index = struct.unpack("<I", read_bytes(data, offset, 4))[0]
        offset += 4

        script_sig, offset = read_var_bytes(data, offset)

        sequence = struct.unpack("<I", read_bytes(data, offset, 4))[0]
        offset += 4

        vin.append(TxIn(Outpoint(prev_hash, prev_index), script_sig, sequence))

    return vin, offset


def _read_outputs(data: bytes, offset: int) -> tuple[list[TxOut], int]:
    count, offset = read_varint(data, offset)
    _check_count(count, MIN_TX_OUTPUT_SIZE, data, offset, "Output")
    vout: list[TxOut] = []

    for _ in range(count):
        value = struct.unpack("<q", read_bytes(data, offset, 8))[0]
        offset += 8

        script_pubkey, offset = read_var_bytes(data, offset)
        vout.append(TxOut(value, script_pubkey))

    return vout, offset


def deserialize_transaction(data: bytes, allow_witness: bool = True) -> tuple[Transaction, int]:
    """
    Parse a wire-format transaction from the start of a buffer.

    An empty input vector followed by a non-zero flag byte marks the
    extended (witness) format; flag 0x01 is the only one defined.

    Returns:
        (transaction, consumed_length)

    Raises:
        TransactionParseError: On truncation, oversized counts or a malformed
            witness section. No partially parsed transaction is returned.
    """
    offset = 0
    version = struct.unpack("<i", read_bytes(data, offset, 4))[0]
    offset += 4

    flags = 0
    vin, offset = _read_inputs(data, offset)
    vout: list[TxOut] = []

    if not vin and allow_witness:
        flags = read_bytes(data, offset, 1)[0]
        offset += 1
        if flags != 0:
            vin, offset = _read_inputs(data, offset)
            vout, offset = _read_outputs(data, offset)
    else:
        vout, offset = _read_outputs(data, offset)

    if flags & 0x01:
        flags ^= 0x01
        for txin in vin:
            stack_count, offset = read_varint(data, offset)
            _check_count(stack_count, 1, data, offset, "Witness item")
            stack: list[bytes] = []
            for _ in range(stack_count):
                item, offset = read_var_bytes(data, offset)
                stack.append(item)
            txin.witness_stack = stack

        if not any(txin.witness_stack for txin in vin):
            raise TransactionParseError("Superfluous witness record")

    if flags:
        raise TransactionParseError(f"Unknown optional data flags: {flags:#x}")

    locktime = struct.unpack("<I", read_bytes(data, offset, 4))[0]
    offset += 4

    return Transaction(version, vin, vout, locktime), offset
