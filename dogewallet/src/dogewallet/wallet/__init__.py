"""
Wallet engines.

- transaction / script / sighash / outputs / signing: build, serialize,
  hash and sign transactions
- bip32 / address / message: HD derivation, key pair helpers and message
  signatures
"""

from dogewallet.wallet.bip32 import DerivationPathError, HDKeyError, HDNode
from dogewallet.wallet.sighash import SigHashType, SighashError, SigVersion, signature_hash
from dogewallet.wallet.signing import SignFailure, SignOutcome, SignResult, SignSuccess, sign_input
from dogewallet.wallet.transaction import (
    Outpoint,
    Transaction,
    TransactionParseError,
    TxIn,
    TxOut,
    deserialize_transaction,
)

__all__ = [
    "DerivationPathError",
    "HDKeyError",
    "HDNode",
    "Outpoint",
    "SigHashType",
    "SigVersion",
    "SighashError",
    "SignFailure",
    "SignOutcome",
    "SignResult",
    "SignSuccess",
    "Transaction",
    "TransactionParseError",
    "TxIn",
    "TxOut",
    "deserialize_transaction",
    "sign_input",
    "signature_hash",
]
