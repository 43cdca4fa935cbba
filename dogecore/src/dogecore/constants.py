"""
Dogecoin protocol constants.
"""

from __future__ import annotations

# secp256k1 curve order
SECP256K1_N = int("FFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141", 16)

HARDENED_OFFSET = 0x80000000

# Standard relay limit for OP_RETURN payloads
MAX_OP_RETURN_DATA = 80

# Hash puzzles commit to a single 32-byte preimage digest
MAX_PUZZLE_SIZE = 32

# Smallest possible encodings, used to bound attacker-controlled counts
MIN_TX_INPUT_SIZE = 32 + 4 + 1 + 4
MIN_TX_OUTPUT_SIZE = 8 + 1

# Output values and spent amounts travel as int64 koinu
MAX_AMOUNT = 2**63 - 1

DEFAULT_TX_VERSION = 1
DEFAULT_SEQUENCE = 0xFFFFFFFF

# Extended key serialization (BIP32)
EXTENDED_KEY_LENGTH = 78
MAX_HD_DEPTH = 255

SEED_ENTROPY_BYTES = 32
