"""
Per-input transaction signing for P2PKH, P2PK and P2SH-P2WPKH inputs.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

from coincurve import PrivateKey
from dogecore.crypto import CryptoError, SecretBytes, compact_to_der, hash160, sign_recoverable
from dogecore.keys import private_key_is_valid
from loguru import logger

from dogewallet.wallet.script import (
    ScriptError,
    ScriptType,
    build_p2pkh,
    build_p2wpkh,
    classify_script,
    push_data,
)
from dogewallet.wallet.sighash import SigHashType, SighashError, SigVersion, signature_hash
from dogewallet.wallet.transaction import Transaction, amount_in_range


class SignResult(IntEnum):
    UNKNOWN = 0
    INVALID_KEY = -2
    NO_KEY_MATCH = -3  # signed anyway, the script names a different key
    SIGHASH_FAILED = -4
    UNKNOWN_SCRIPT_TYPE = -5
    INVALID_TX_OR_SCRIPT = -6
    INPUTINDEX_OUT_OF_RANGE = -7
    OK = 1

    def describe(self) -> str:
        return _RESULT_DESCRIPTIONS[self]


_RESULT_DESCRIPTIONS = {
    SignResult.UNKNOWN: "UNKNOWN",
    SignResult.INVALID_KEY: "INVALID_KEY",
    SignResult.NO_KEY_MATCH: "NO_KEY_MATCH",
    SignResult.SIGHASH_FAILED: "SIGHASH_FAILED",
    SignResult.UNKNOWN_SCRIPT_TYPE: "UNKNOWN_SCRIPT_TYPE",
    SignResult.INVALID_TX_OR_SCRIPT: "INVALID_TX_OR_SCRIPT",
    SignResult.INPUTINDEX_OUT_OF_RANGE: "INPUTINDEX_OUT_OF_RANGE",
    SignResult.OK: "OK",
}


@dataclass(frozen=True)
class SignSuccess:
    """
    A signature was produced and installed into the input.

    result is OK, or NO_KEY_MATCH when the spent script commits to a
    different key; the caller decides whether such a signature is useful
    (e.g. partial multisig assembly).
    """

    result: SignResult
    sig_compact: bytes  # r || s || recid, 65 bytes
    sig_der: bytes  # without the trailing hash type byte

    @property
    def key_matched(self) -> bool:
        return self.result == SignResult.OK


@dataclass(frozen=True)
class SignFailure:
    """No signature was produced; the transaction is unchanged."""

    result: SignResult
    reason: str


SignOutcome = SignSuccess | SignFailure


@dataclass(frozen=True)
class _SigningPlan:
    subscript: bytes
    sig_version: SigVersion
    key_matched: bool
    script_type: ScriptType
    pubkey: bytes
    redeem_script: bytes = b""


def _load_key(private_key: PrivateKey | bytes) -> PrivateKey | None:
    if isinstance(private_key, PrivateKey):
        return private_key
    with SecretBytes(private_key) as secret:
        if not private_key_is_valid(secret.raw):
            return None
        return PrivateKey(secret.raw)


def _plan(script: bytes, private_key: PrivateKey) -> _SigningPlan | SignFailure:
    try:
        match = classify_script(script)
    except ScriptError as e:
        return SignFailure(SignResult.INVALID_TX_OR_SCRIPT, f"Malformed script: {e}")

    compressed = private_key.public_key.format(compressed=True)
    uncompressed = private_key.public_key.format(compressed=False)

    if match.type == ScriptType.PUBKEYHASH:
        embedded = match.pushes[0]
        if embedded == hash160(uncompressed):
            return _SigningPlan(script, SigVersion.BASE, True, match.type, uncompressed)
        return _SigningPlan(
            script, SigVersion.BASE, embedded == hash160(compressed), match.type, compressed
        )

    if match.type == ScriptType.PUBKEY:
        embedded = match.pushes[0]
        pubkey = uncompressed if len(embedded) == 65 else compressed
        return _SigningPlan(script, SigVersion.BASE, embedded == pubkey, match.type, pubkey)

    if match.type == ScriptType.SCRIPTHASH:
        # Only P2SH-wrapped P2WPKH can be signed without an external redeem script
        pubkey_hash = hash160(compressed)
        redeem_script = build_p2wpkh(pubkey_hash)
        return _SigningPlan(
            subscript=build_p2pkh(pubkey_hash),
            sig_version=SigVersion.WITNESS_V0,
            key_matched=hash160(redeem_script) == match.pushes[0],
            script_type=match.type,
            pubkey=compressed,
            redeem_script=redeem_script,
        )

    return SignFailure(SignResult.UNKNOWN_SCRIPT_TYPE, f"Cannot sign {match.type.value} script")


def sign_input(
    tx: Transaction,
    script: bytes,
    amount: int,
    private_key: PrivateKey | bytes,
    input_index: int,
    sighash_type: int = SigHashType.ALL,
) -> SignOutcome:
    """
    Sign one input and install the resulting script_sig (and witness).

    Args:
        tx: Transaction to sign; only the target input is modified, and only
            on success
        script: scriptPubKey of the output being spent
        amount: Value of the output being spent (used by witness inputs)
        private_key: coincurve PrivateKey or 32 raw secret bytes
        input_index: Index of the input to sign
        sighash_type: SIGHASH_* flags

    Returns:
        SignSuccess carrying the compact and DER signatures, or SignFailure.
    """
    if not 0 <= input_index < len(tx.vin):
        return SignFailure(
            SignResult.INPUTINDEX_OUT_OF_RANGE,
            f"Input index {input_index} out of range ({len(tx.vin)} inputs)",
        )

    key = _load_key(private_key)
    if key is None:
        return SignFailure(SignResult.INVALID_KEY, "Private key is not valid")

    if not amount_in_range(amount):
        return SignFailure(
            SignResult.INVALID_TX_OR_SCRIPT, f"Spent amount out of range: {amount}"
        )
    if not all(amount_in_range(txout.value) for txout in tx.vout):
        return SignFailure(SignResult.INVALID_TX_OR_SCRIPT, "Output value out of range")

    plan = _plan(script, key)
    if isinstance(plan, SignFailure):
        logger.debug(f"Input {input_index}: {plan.reason}")
        return plan

    try:
        sighash = signature_hash(
            tx, plan.subscript, input_index, sighash_type, amount, plan.sig_version
        )
    except SighashError as e:
        logger.debug(f"Input {input_index}: sighash failed: {e}")
        return SignFailure(SignResult.SIGHASH_FAILED, str(e))

    try:
        sig_compact = sign_recoverable(key, sighash)
        sig_der = compact_to_der(sig_compact)
    except CryptoError as e:
        return SignFailure(SignResult.UNKNOWN, f"Signing failed: {e}")

    sig_with_type = sig_der + bytes([sighash_type & 0xFF])
    txin = tx.vin[input_index]

    if plan.script_type == ScriptType.SCRIPTHASH:
        txin.script_sig = push_data(plan.redeem_script)
        txin.witness_stack = [sig_with_type, plan.pubkey]
    elif plan.script_type == ScriptType.PUBKEYHASH:
        txin.script_sig = push_data(sig_with_type) + push_data(plan.pubkey)
        txin.witness_stack = []
    else:
        txin.script_sig = push_data(sig_with_type)
        txin.witness_stack = []

    result = SignResult.OK if plan.key_matched else SignResult.NO_KEY_MATCH
    if result == SignResult.NO_KEY_MATCH:
        logger.warning(f"Input {input_index}: signed with a key the script does not commit to")

    return SignSuccess(result, sig_compact, sig_der)
