"""
Script building and template classification.

Only the handful of opcodes needed for standard output templates are named
here; classification returns one of a closed set of templates.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from dogecore.chainparams import ChainParams
from dogecore.keys import AddressKind, decode_address

OP_0 = 0x00
OP_PUSHDATA1 = 0x4C
OP_PUSHDATA2 = 0x4D
OP_PUSHDATA4 = 0x4E
OP_1 = 0x51
OP_16 = 0x60
OP_RETURN = 0x6A
OP_DUP = 0x76
OP_EQUAL = 0x87
OP_EQUALVERIFY = 0x88
OP_HASH160 = 0xA9
OP_HASH256 = 0xAA
OP_CODESEPARATOR = 0xAB
OP_CHECKSIG = 0xAC
OP_CHECKMULTISIG = 0xAE


class ScriptError(Exception):
    pass


class ScriptType(str, Enum):
    PUBKEY = "pubkey"
    PUBKEYHASH = "pubkeyhash"
    SCRIPTHASH = "scripthash"
    MULTISIG = "multisig"
    NULL_DATA = "nulldata"
    WITNESS_V0_PUBKEYHASH = "witness_v0_keyhash"
    WITNESS_V0_SCRIPTHASH = "witness_v0_scripthash"
    NONSTANDARD = "nonstandard"


@dataclass(frozen=True)
class ScriptOp:
    opcode: int
    data: bytes | None = None
    offset: int = 0


@dataclass(frozen=True)
class ScriptMatch:
    """Result of classifying a script: template plus its embedded pushes."""

    type: ScriptType
    pushes: list[bytes] = field(default_factory=list)


def push_data(data: bytes) -> bytes:
    """Minimal push encoding for a data element."""
    length = len(data)
    if length < OP_PUSHDATA1:
        return bytes([length]) + data
    if length <= 0xFF:
        return bytes([OP_PUSHDATA1, length]) + data
    if length <= 0xFFFF:
        return bytes([OP_PUSHDATA2]) + length.to_bytes(2, "little") + data
    return bytes([OP_PUSHDATA4]) + length.to_bytes(4, "little") + data


def iter_script(script: bytes) -> list[ScriptOp]:
    """
    Split a script into opcodes and pushed data.

    Raises:
        ScriptError: If a push runs past the end of the script.
    """
    ops: list[ScriptOp] = []
    i = 0
    while i < len(script):
        start = i
        opcode = script[i]
        i += 1

        if opcode < OP_PUSHDATA1:
            size = opcode
        elif opcode == OP_PUSHDATA1:
            if i + 1 > len(script):
                raise ScriptError("Truncated OP_PUSHDATA1")
            size = script[i]
            i += 1
        elif opcode == OP_PUSHDATA2:
            if i + 2 > len(script):
                raise ScriptError("Truncated OP_PUSHDATA2")
            size = int.from_bytes(script[i : i + 2], "little")
            i += 2
        elif opcode == OP_PUSHDATA4:
            if i + 4 > len(script):
                raise ScriptError("Truncated OP_PUSHDATA4")
            size = int.from_bytes(script[i : i + 4], "little")
            i += 4
        else:
            ops.append(ScriptOp(opcode, None, start))
            continue

        if i + size > len(script):
            raise ScriptError(f"Push of {size} bytes runs past end of script")
        ops.append(ScriptOp(opcode, script[i : i + size], start))
        i += size

    return ops


def strip_codeseparators(script: bytes) -> bytes:
    """Remove every OP_CODESEPARATOR (pushed data is left intact)."""
    ops = iter_script(script)
    out = bytearray()
    for idx, op in enumerate(ops):
        if op.opcode == OP_CODESEPARATOR and op.data is None:
            continue
        end = ops[idx + 1].offset if idx + 1 < len(ops) else len(script)
        out += script[op.offset : end]
    return bytes(out)


def _small_int(opcode: int) -> int | None:
    if opcode == OP_0:
        return 0
    if OP_1 <= opcode <= OP_16:
        return opcode - OP_1 + 1
    return None


def classify_script(script: bytes) -> ScriptMatch:
    """
    Match a script against the known output templates.

    Raises:
        ScriptError: If the script cannot be parsed.
    """
    if (
        len(script) == 25
        and script[:3] == bytes([OP_DUP, OP_HASH160, 0x14])
        and script[23:] == bytes([OP_EQUALVERIFY, OP_CHECKSIG])
    ):
        return ScriptMatch(ScriptType.PUBKEYHASH, [script[3:23]])

    if len(script) == 23 and script[:2] == bytes([OP_HASH160, 0x14]) and script[22] == OP_EQUAL:
        return ScriptMatch(ScriptType.SCRIPTHASH, [script[2:22]])

    if len(script) == 22 and script[:2] == bytes([OP_0, 0x14]):
        return ScriptMatch(ScriptType.WITNESS_V0_PUBKEYHASH, [script[2:]])

    if len(script) == 34 and script[:2] == bytes([OP_0, 0x20]):
        return ScriptMatch(ScriptType.WITNESS_V0_SCRIPTHASH, [script[2:]])

    ops = iter_script(script)

    if ops and ops[0].opcode == OP_RETURN:
        return ScriptMatch(ScriptType.NULL_DATA, [op.data for op in ops[1:] if op.data is not None])

    if (
        len(ops) == 2
        and ops[0].data is not None
        and len(ops[0].data) in (33, 65)
        and ops[1].opcode == OP_CHECKSIG
    ):
        return ScriptMatch(ScriptType.PUBKEY, [ops[0].data])

    if len(ops) >= 4 and ops[-1].opcode == OP_CHECKMULTISIG:
        required = _small_int(ops[0].opcode)
        total = _small_int(ops[-2].opcode)
        pubkeys = [op.data for op in ops[1:-2]]
        if (
            required
            and total
            and required <= total == len(pubkeys)
            and all(pk is not None and len(pk) in (33, 65) for pk in pubkeys)
        ):
            return ScriptMatch(ScriptType.MULTISIG, [pk for pk in pubkeys if pk is not None])

    return ScriptMatch(ScriptType.NONSTANDARD)


def build_p2pkh(pubkey_hash: bytes) -> bytes:
    """OP_DUP OP_HASH160 <20-byte-hash> OP_EQUALVERIFY OP_CHECKSIG"""
    if len(pubkey_hash) != 20:
        raise ScriptError(f"Invalid pubkey hash length: {len(pubkey_hash)}")
    return bytes([OP_DUP, OP_HASH160, 0x14]) + pubkey_hash + bytes([OP_EQUALVERIFY, OP_CHECKSIG])


def build_p2sh(script_hash: bytes) -> bytes:
    """OP_HASH160 <20-byte-hash> OP_EQUAL"""
    if len(script_hash) != 20:
        raise ScriptError(f"Invalid script hash length: {len(script_hash)}")
    return bytes([OP_HASH160, 0x14]) + script_hash + bytes([OP_EQUAL])


def build_p2pk(pubkey: bytes) -> bytes:
    return push_data(pubkey) + bytes([OP_CHECKSIG])


def build_p2wpkh(pubkey_hash: bytes) -> bytes:
    if len(pubkey_hash) != 20:
        raise ScriptError(f"Invalid pubkey hash length: {len(pubkey_hash)}")
    return bytes([OP_0, 0x14]) + pubkey_hash


def build_p2wsh(script_hash: bytes) -> bytes:
    if len(script_hash) != 32:
        raise ScriptError(f"Invalid witness script hash length: {len(script_hash)}")
    return bytes([OP_0, 0x20]) + script_hash


def build_null_data(data: bytes) -> bytes:
    """OP_RETURN <data>: provably unspendable."""
    return bytes([OP_RETURN]) + push_data(data)


def build_puzzle(puzzle: bytes) -> bytes:
    """OP_HASH256 <puzzle> OP_EQUAL: spendable by anyone revealing the preimage."""
    return bytes([OP_HASH256]) + push_data(puzzle) + bytes([OP_EQUAL])


def address_to_script(address: str, chain: ChainParams) -> bytes:
    """
    Convert an address on the given network to its scriptPubKey.

    Raises:
        AddressError: If the address fails to decode for this network.
    """
    kind, payload = decode_address(address, chain)
    if kind == AddressKind.P2PKH:
        return build_p2pkh(payload)
    if kind == AddressKind.P2SH:
        return build_p2sh(payload)
    if kind == AddressKind.P2WPKH:
        return build_p2wpkh(payload)
    return build_p2wsh(payload)
