"""
BIP32 HD key derivation for Dogecoin wallets.
Implements BIP44 paths m/44'/coin'/account'/change/index.
"""

from __future__ import annotations

import re
import secrets

import base58
from coincurve import PrivateKey, PublicKey
from dogecore.chainparams import ChainParams
from dogecore.constants import (
    EXTENDED_KEY_LENGTH,
    HARDENED_OFFSET,
    MAX_HD_DEPTH,
    SECP256K1_N,
    SEED_ENTROPY_BYTES,
)
from dogecore.crypto import SecretBytes, hash160, hmac_sha512
from dogecore.keys import private_key_is_valid, pubkey_to_p2pkh_address
from mnemonic import Mnemonic

_PATH_SEGMENT = re.compile(r"^(\d+)(['hH]?)$")


class HDKeyError(Exception):
    pass


class DerivationPathError(HDKeyError):
    pass


def parse_derivation_path(path: str) -> list[int]:
    """
    Parse "m/44'/3'/0'/0/0" into child indexes.

    ' or h marks a hardened index (adds 0x80000000).

    Raises:
        DerivationPathError: On a missing "m" root, empty or non-numeric
            segment, index >= 2^31 or more than 255 levels.
    """
    parts = path.strip().split("/")
    if parts[0] != "m":
        raise DerivationPathError(f"Path must start with 'm': {path!r}")

    indexes: list[int] = []
    for part in parts[1:]:
        match = _PATH_SEGMENT.match(part)
        if not match:
            raise DerivationPathError(f"Invalid path segment {part!r} in {path!r}")
        index = int(match.group(1))
        if index >= HARDENED_OFFSET:
            raise DerivationPathError(f"Index {index} out of range in {path!r}")
        if match.group(2):
            index += HARDENED_OFFSET
        indexes.append(index)

    if len(indexes) > MAX_HD_DEPTH:
        raise DerivationPathError(f"Path deeper than {MAX_HD_DEPTH} levels")
    return indexes


def bip44_path(coin_type: int, account: int, change: int, index: int | None = None) -> str:
    """Build m/44'/coin'/account'/change[/index]."""
    if change not in (0, 1):
        raise DerivationPathError(f"Change level must be 0 or 1, got {change}")
    for name, value in (("coin type", coin_type), ("account", account), ("index", index)):
        if value is not None and not 0 <= value < HARDENED_OFFSET:
            raise DerivationPathError(f"BIP44 {name} out of range: {value}")
    path = f"m/44'/{coin_type}'/{account}'/{change}"
    if index is not None:
        path += f"/{index}"
    return path


class HDNode:
    """
    Hierarchical Deterministic node (BIP32).

    Holds the chain code, the compressed public key and, unless the node is
    public-only, the private key. Derivation always returns a new node.
    """

    def __init__(
        self,
        chain_code: bytes,
        public_key: bytes,
        private_key: PrivateKey | None = None,
        depth: int = 0,
        fingerprint: int = 0,
        child_num: int = 0,
    ):
        if len(chain_code) != 32:
            raise HDKeyError(f"Chain code must be 32 bytes, got {len(chain_code)}")
        self.chain_code = chain_code
        self.public_key = public_key
        self._private_key = private_key
        self.depth = depth
        self.fingerprint = fingerprint
        self.child_num = child_num

    def __repr__(self) -> str:
        kind = "private" if self.has_private_key else "public"
        return f"HDNode(depth={self.depth}, child_num={self.child_num:#x}, {kind})"

    @property
    def has_private_key(self) -> bool:
        return self._private_key is not None

    @property
    def private_key(self) -> PrivateKey:
        """Return the coincurve PrivateKey instance."""
        if self._private_key is None:
            raise HDKeyError("Node has no private key")
        return self._private_key

    @property
    def identifier(self) -> bytes:
        return hash160(self.public_key)

    @property
    def own_fingerprint(self) -> int:
        """Fingerprint children of this node record as their parent."""
        return int.from_bytes(self.identifier[:4], "big")

    @classmethod
    def from_seed(cls, seed: bytes) -> HDNode:
        """Create master node from seed"""
        with SecretBytes(hmac_sha512(b"Bitcoin seed", seed)) as digest:
            key_bytes = digest.raw[:32]
            chain_code = digest.raw[32:]

        if not private_key_is_valid(key_bytes):
            raise HDKeyError("Seed produced an invalid master key")

        private_key = PrivateKey(key_bytes)
        return cls(chain_code, private_key.public_key.format(compressed=True), private_key)

    @classmethod
    def generate(cls) -> HDNode:
        """Create a master node from fresh random entropy."""
        with SecretBytes(secrets.token_bytes(SEED_ENTROPY_BYTES)) as seed:
            return cls.from_seed(seed.raw)

    @classmethod
    def deserialize(cls, extended_key: str, chain: ChainParams) -> HDNode:
        """
        Parse a base58check extended key (xprv/xpub style) for a network.

        Raises:
            HDKeyError: On checksum, length, version, padding or key errors.
        """
        try:
            payload = base58.b58decode_check(extended_key)
        except ValueError as e:
            raise HDKeyError(f"Invalid extended key encoding: {e}") from e

        if len(payload) != EXTENDED_KEY_LENGTH:
            raise HDKeyError(f"Invalid extended key length: {len(payload)}")

        with SecretBytes(payload) as buf:
            raw = buf.raw
            version = int.from_bytes(raw[0:4], "big")
            depth = raw[4]
            fingerprint = int.from_bytes(raw[5:9], "big")
            child_num = int.from_bytes(raw[9:13], "big")
            chain_code = raw[13:45]
            key_data = raw[45:78]

            if depth == 0 and (fingerprint != 0 or child_num != 0):
                raise HDKeyError("Master key with non-zero parent fingerprint or index")

            if version == chain.b58prefix_bip32_privkey_address:
                if key_data[0] != 0x00:
                    raise HDKeyError("Private extended key missing 0x00 padding")
                if not private_key_is_valid(key_data[1:]):
                    raise HDKeyError("Extended key holds an invalid private key")
                private_key = PrivateKey(key_data[1:])
                public_key = private_key.public_key.format(compressed=True)
                return cls(chain_code, public_key, private_key, depth, fingerprint, child_num)

        if version == chain.b58prefix_bip32_pubkey_address:
            try:
                PublicKey(key_data)
            except ValueError as e:
                raise HDKeyError(f"Extended key holds an invalid public key: {e}") from e
            if key_data[0] not in (0x02, 0x03):
                raise HDKeyError("Extended public key must be compressed")
            return cls(chain_code, key_data, None, depth, fingerprint, child_num)

        raise HDKeyError(f"Extended key version {version:#010x} does not match {chain.name}")

    def _serialize(self, version: int, key_data: bytes) -> str:
        payload = (
            version.to_bytes(4, "big")
            + bytes([self.depth])
            + self.fingerprint.to_bytes(4, "big")
            + self.child_num.to_bytes(4, "big")
            + self.chain_code
            + key_data
        )
        return base58.b58encode_check(payload).decode("ascii")

    def serialize_private(self, chain: ChainParams) -> str:
        return self._serialize(
            chain.b58prefix_bip32_privkey_address, b"\x00" + self.private_key.secret
        )

    def serialize_public(self, chain: ChainParams) -> str:
        return self._serialize(chain.b58prefix_bip32_pubkey_address, self.public_key)

    def neuter(self) -> HDNode:
        """Return a public-only copy of this node."""
        return HDNode(
            self.chain_code, self.public_key, None, self.depth, self.fingerprint, self.child_num
        )

    def as_root(self) -> HDNode:
        """Copy of this node with depth, parent fingerprint and child number reset."""
        return HDNode(self.chain_code, self.public_key, self._private_key)

    def derive_child(self, index: int) -> HDNode:
        """
        Derive the child at index (>= 0x80000000 means hardened).

        Hardened derivation requires the private key; public-only nodes
        derive non-hardened children by tweaking the public point.
        """
        if not 0 <= index <= 0xFFFFFFFF:
            raise DerivationPathError(f"Child index out of range: {index}")
        if self.depth >= MAX_HD_DEPTH:
            raise HDKeyError("Maximum derivation depth reached")

        hardened = index >= HARDENED_OFFSET
        if hardened and self._private_key is None:
            raise HDKeyError("Hardened derivation requires a private key")

        if hardened:
            with SecretBytes(b"\x00" + self._private_key.secret) as prefix:
                data = prefix.raw + index.to_bytes(4, "big")
        else:
            data = self.public_key + index.to_bytes(4, "big")

        with SecretBytes(hmac_sha512(self.chain_code, data)) as digest:
            key_offset = digest.raw[:32]
            child_chain = digest.raw[32:]

        offset_int = int.from_bytes(key_offset, "big")
        if offset_int >= SECP256K1_N:
            raise HDKeyError(f"Invalid child key at index {index}")

        if self._private_key is not None:
            parent_key_int = int.from_bytes(self._private_key.secret, "big")
            child_key_int = (parent_key_int + offset_int) % SECP256K1_N
            if child_key_int == 0:
                raise HDKeyError(f"Invalid child key at index {index}")
            child_private_key = PrivateKey(child_key_int.to_bytes(32, "big"))
            child_public_key = child_private_key.public_key.format(compressed=True)
        else:
            child_private_key = None
            try:
                child_point = PublicKey(self.public_key).add(key_offset)
                child_public_key = child_point.format(compressed=True)
            except ValueError as e:
                raise HDKeyError(f"Invalid child key at index {index}") from e

        return HDNode(
            child_chain,
            child_public_key,
            child_private_key,
            depth=self.depth + 1,
            fingerprint=self.own_fingerprint,
            child_num=index,
        )

    def derive(self, path: str) -> HDNode:
        """
        Derive child node from path notation (e.g., "m/44'/3'/0'/0/0")
        ' indicates hardened derivation
        """
        node = self
        for index in parse_derivation_path(path):
            node = node.derive_child(index)
        return node

    def p2pkh_address(self, chain: ChainParams) -> str:
        """Get P2PKH address for this node's public key"""
        return pubkey_to_p2pkh_address(self.public_key, chain)


def mnemonic_to_seed(mnemonic: str, passphrase: str = "") -> bytes:
    """Convert a BIP39 mnemonic and optional passphrase to a 64-byte seed."""
    return Mnemonic.to_seed(mnemonic, passphrase)


def generate_mnemonic(word_count: int = 24) -> str:
    """Generate a BIP39 mnemonic (12, 15, 18, 21 or 24 words) from secure entropy."""
    strengths = {12: 128, 15: 160, 18: 192, 21: 224, 24: 256}
    if word_count not in strengths:
        raise ValueError(f"word_count must be one of {sorted(strengths)}")
    return Mnemonic("english").generate(strength=strengths[word_count])


def mnemonic_is_valid(mnemonic: str) -> bool:
    return Mnemonic("english").check(mnemonic)
