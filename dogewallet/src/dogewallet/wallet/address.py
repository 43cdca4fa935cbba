"""
Key generation, HD derivation and address verification routines.

Generation and derivation helpers return encoded strings (WIF, extended
keys, addresses) and raise on bad input; the verify_* routines collapse
every failure to False.
"""

from __future__ import annotations

import base58
from dogecore.chainparams import (
    MAINNET,
    ChainParams,
    UnknownNetworkError,
    chain_from_b58_prefix,
    select_chain,
)
from dogecore.crypto import SecretBytes, hash256
from dogecore.keys import (
    AddressError,
    InvalidKeyError,
    decode_wif,
    encode_wif,
    generate_private_key,
    load_private_key,
    pubkey_is_valid,
    pubkey_to_p2pkh_address,
    pubkey_to_p2sh_p2wpkh_address,
    pubkey_to_p2wpkh_address,
)
from loguru import logger

from dogewallet.wallet.bip32 import HDKeyError, HDNode, bip44_path, mnemonic_to_seed


def _chain_for_key(extended_key: str) -> ChainParams:
    try:
        return chain_from_b58_prefix(extended_key)
    except UnknownNetworkError as e:
        raise HDKeyError(f"Unrecognised extended key prefix: {e}") from e


def _derive_from_root(node: HDNode, path: str) -> HDNode:
    # Paths walk from the given key as if it were a master, so the result's
    # depth counts only the steps in the path
    return node.as_root().derive(path)


def _network(is_testnet: bool, chain: ChainParams | None) -> ChainParams:
    # An explicit chain wins; the flag alone cannot name regtest
    return chain if chain is not None else select_chain(is_testnet)


def _node_from_mnemonic(mnemonic: str, passphrase: str = "") -> HDNode:
    if not mnemonic:
        raise HDKeyError("Mnemonic required")
    with SecretBytes(mnemonic_to_seed(mnemonic, passphrase)) as seed:
        return HDNode.from_seed(seed.raw)


def gen_privatekey(chain: ChainParams = MAINNET) -> tuple[str, str]:
    """Generate a private key, returning (wif, hex)."""
    key = generate_private_key()
    return encode_wif(key.secret, chain), key.secret.hex()


def pubkey_from_privatekey(chain: ChainParams, wif_privkey: str) -> str:
    """Compressed public key hex for a WIF private key."""
    secret, _ = decode_wif(wif_privkey, chain)
    return load_private_key(secret).public_key.format(compressed=True).hex()


def addresses_from_pubkey(chain: ChainParams, pubkey_hex: str) -> tuple[str, str, str]:
    """
    Derive (P2PKH, P2SH-P2WPKH, P2WPKH) addresses from a public key.

    Raises:
        AddressError: If the hex does not decode to a valid public key.
    """
    try:
        pubkey = bytes.fromhex(pubkey_hex)
    except ValueError as e:
        raise AddressError(f"Invalid public key hex: {e}") from e
    if not pubkey_is_valid(pubkey):
        raise AddressError("Invalid public key")
    return (
        pubkey_to_p2pkh_address(pubkey, chain),
        pubkey_to_p2sh_p2wpkh_address(pubkey, chain),
        pubkey_to_p2wpkh_address(pubkey, chain),
    )


def address_from_privkey(privkey_hex: str, chain: ChainParams = MAINNET) -> str:
    """P2PKH address (compressed public key) for a hex-encoded private key."""
    try:
        raw = bytes.fromhex(privkey_hex)
    except ValueError as e:
        raise InvalidKeyError(f"Invalid private key hex: {e}") from e
    with SecretBytes(raw) as secret:
        key = load_private_key(secret.raw)
    return pubkey_to_p2pkh_address(key.public_key.format(compressed=True), chain)


def generate_priv_pub_keypair(
    is_testnet: bool = False, chain: ChainParams | None = None
) -> tuple[str, str]:
    """
    Generate a fresh key pair.

    Returns:
        (wif_privkey, p2pkh_address)
    """
    chain = _network(is_testnet, chain)
    key = generate_private_key()
    wif = encode_wif(key.secret, chain)
    address = pubkey_to_p2pkh_address(key.public_key.format(compressed=True), chain)
    return wif, address


def hd_gen_master(chain: ChainParams = MAINNET) -> str:
    """Generate a random HD master node and return its extended private key."""
    return HDNode.generate().serialize_private(chain)


def generate_hd_master_pub_keypair(
    is_testnet: bool = False, chain: ChainParams | None = None
) -> tuple[str, str]:
    """
    Generate an HD master key.

    Returns:
        (extended_private_key, p2pkh_address_of_master)
    """
    chain = _network(is_testnet, chain)
    master = hd_gen_master(chain)
    return master, HDNode.deserialize(master, chain).p2pkh_address(chain)


def generate_derived_hd_pubkey(wif_privkey_master: str) -> str:
    """P2PKH address of the node encoded by an extended key."""
    chain = _chain_for_key(wif_privkey_master)
    return HDNode.deserialize(wif_privkey_master, chain).p2pkh_address(chain)


def verify_priv_pub_keypair(
    wif_privkey: str,
    p2pkh_address: str,
    is_testnet: bool = False,
    chain: ChainParams | None = None,
) -> bool:
    """True when the WIF key is valid on the network and yields exactly this address."""
    chain = _network(is_testnet, chain)
    try:
        secret, compressed = decode_wif(wif_privkey, chain)
        key = load_private_key(secret)
    except InvalidKeyError as e:
        logger.debug(f"Keypair verification failed: {e}")
        return False
    derived = pubkey_to_p2pkh_address(key.public_key.format(compressed=compressed), chain)
    return derived == p2pkh_address


def verify_hd_master_pub_keypair(
    wif_privkey_master: str,
    p2pkh_address_master: str,
    is_testnet: bool = False,
    chain: ChainParams | None = None,
) -> bool:
    chain = _network(is_testnet, chain)
    try:
        node = HDNode.deserialize(wif_privkey_master, chain)
    except HDKeyError as e:
        logger.debug(f"HD master verification failed: {e}")
        return False
    return node.p2pkh_address(chain) == p2pkh_address_master


def verify_p2pkh_address(address: str) -> bool:
    """
    Basic validity check of a base58check P2PKH/P2SH address.

    Decodes the string and recomputes the double SHA-256 checksum over the
    21-byte payload.
    """
    if not address:
        return False
    try:
        raw = base58.b58decode(address)
    except ValueError:
        return False
    if len(raw) != 25:
        return False
    return hash256(raw[:21])[:4] == raw[21:]


def get_derived_hd_address_by_path(masterkey: str, derived_path: str, outprivkey: bool) -> str:
    """
    Derive an extended key along an arbitrary path.

    A public-only master derives with public (non-hardened) derivation. The
    master is treated as a root, so the result's depth is the path length.

    Args:
        masterkey: Extended private or public key
        derived_path: e.g. "m/44'/3'/0'/0/0"
        outprivkey: True to return the extended private key, False for public

    Raises:
        HDKeyError: On a malformed key or path, a hardened step without a
            private key, or a private result requested from a public master.
    """
    chain = _chain_for_key(masterkey)
    node = _derive_from_root(HDNode.deserialize(masterkey, chain), derived_path)
    if outprivkey:
        return node.serialize_private(chain)
    return node.serialize_public(chain)


def get_derived_hd_address(
    masterkey: str, account: int, ischange: bool, addressindex: int, outprivkey: bool
) -> str:
    """Derive the extended key at m/44'/coin'/account'/change/index."""
    chain = _chain_for_key(masterkey)
    path = bip44_path(chain.bip44_coin_type, account, int(ischange), addressindex)
    return get_derived_hd_address_by_path(masterkey, path, outprivkey)


def hd_derive(chain: ChainParams, masterkey: str, derived_path: str) -> str:
    """Derive along a path, keeping the private/public kind of the source key."""
    node = HDNode.deserialize(masterkey, chain)
    child = _derive_from_root(node, derived_path)
    if node.has_private_key:
        return child.serialize_private(chain)
    return child.serialize_public(chain)


def get_derived_hd_address_from_mnemonic(
    account: int,
    index: int,
    change_level: int,
    mnemonic: str,
    passphrase: str = "",
    is_testnet: bool = False,
    chain: ChainParams | None = None,
) -> str:
    """P2PKH address at m/44'/coin'/account'/change/index of a mnemonic wallet."""
    chain = _network(is_testnet, chain)
    path = bip44_path(chain.bip44_coin_type, account, change_level, index)
    return _node_from_mnemonic(mnemonic, passphrase).derive(path).p2pkh_address(chain)


def generate_hd_master_pub_keypair_from_mnemonic(
    mnemonic: str,
    passphrase: str = "",
    is_testnet: bool = False,
    chain: ChainParams | None = None,
) -> tuple[str, str]:
    """
    Master key and its address for a mnemonic.

    Returns:
        (extended_private_key, p2pkh_address_of_master)
    """
    chain = _network(is_testnet, chain)
    node = _node_from_mnemonic(mnemonic, passphrase)
    return node.serialize_private(chain), node.p2pkh_address(chain)


def verify_hd_master_pub_keypair_from_mnemonic(
    wif_privkey_master: str,
    p2pkh_address_master: str,
    mnemonic: str,
    passphrase: str = "",
    is_testnet: bool = False,
    chain: ChainParams | None = None,
) -> bool:
    try:
        master, address = generate_hd_master_pub_keypair_from_mnemonic(
            mnemonic, passphrase, is_testnet, chain
        )
    except HDKeyError as e:
        logger.debug(f"Mnemonic verification failed: {e}")
        return False
    return master == wif_privkey_master and address == p2pkh_address_master


def hd_print_node(chain: ChainParams, extended_key: str) -> dict[str, str | int]:
    """
    Describe the node an extended key encodes.

    Returns:
        Mapping of field name to value; private material is never included.
    """
    node = HDNode.deserialize(extended_key, chain)
    return {
        "ext key": extended_key,
        "depth": node.depth,
        "parent fingerprint": f"{node.fingerprint:08x}",
        "child index": node.child_num,
        "p2pkh address": node.p2pkh_address(chain),
        "pubkey hex": node.public_key.hex(),
        "extended pubkey": node.serialize_public(chain),
    }
