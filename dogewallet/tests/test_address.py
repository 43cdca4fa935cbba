"""
Tests for key pair, HD master and address helpers.
"""

import pytest
from dogecore.chainparams import MAINNET, REGTEST, TESTNET, chain_from_b58_prefix
from dogecore.keys import AddressError, InvalidKeyError, decode_wif

from dogewallet.wallet.address import (
    address_from_privkey,
    addresses_from_pubkey,
    gen_privatekey,
    generate_derived_hd_pubkey,
    generate_hd_master_pub_keypair,
    generate_hd_master_pub_keypair_from_mnemonic,
    generate_priv_pub_keypair,
    get_derived_hd_address,
    get_derived_hd_address_by_path,
    get_derived_hd_address_from_mnemonic,
    hd_derive,
    hd_gen_master,
    hd_print_node,
    pubkey_from_privatekey,
    verify_hd_master_pub_keypair,
    verify_hd_master_pub_keypair_from_mnemonic,
    verify_p2pkh_address,
    verify_priv_pub_keypair,
)
from dogewallet.wallet.bip32 import HDKeyError, HDNode, mnemonic_to_seed

WIF = "QUaohmokNWroj71dRtmPSses5eRw5SGLKsYSRSVisJHyZdxhdDCZ"
WIF_PUBKEY = "024c33fbb2f6accde1db907e88ebf5dd1693e31433c62aaeef42f7640974f602ba"
PUBKEY = "039ca1fdedbe160cb7b14df2a798c8fed41ad4ed30b06a85ad23e03abe43c413b2"
MASTER_KEY = (
    "dgpv557t1z21sLCnAz3cJPW5DiVErXdAi7iWpSJwBBaeN87umwje8LuTKREPTYPTNGXG"
    "nB3oNd2z6RmFFDU99WKbiRDJKKXfHxf48puZibauJYB"
)
MASTER_CHILD_0 = (
    "dgpv544MJMFeoz5LXkwbZTWwouwFje2Yp9c1A8ReNaapDFjW44jEcLXv3B3KQg3fjWXW"
    "VC9FGRyxLaCHjN1DUeGgoYJxMYM723wrLN6BArKUxe3"
)


def _flip_last(text: str) -> str:
    return text[:-1] + ("A" if text[-1] != "A" else "B")


@pytest.fixture
def mnemonic_master(test_mnemonic) -> str:
    return HDNode.from_seed(mnemonic_to_seed(test_mnemonic)).serialize_private(MAINNET)


class TestKeyTools:
    def test_gen_privatekey(self):
        wif, privkey_hex = gen_privatekey(MAINNET)
        secret, compressed = decode_wif(wif, MAINNET)
        assert secret.hex() == privkey_hex
        assert compressed

    def test_gen_privatekey_testnet(self):
        wif, _ = gen_privatekey(TESTNET)
        decode_wif(wif, TESTNET)

    def test_pubkey_from_privatekey(self):
        assert pubkey_from_privatekey(MAINNET, WIF) == WIF_PUBKEY

    def test_pubkey_from_privatekey_wrong_network(self):
        with pytest.raises(InvalidKeyError):
            pubkey_from_privatekey(TESTNET, WIF)

    def test_addresses_from_pubkey(self):
        assert addresses_from_pubkey(MAINNET, PUBKEY) == (
            "DTwqVfB7tbwca2PzwBvPV1g1xDB2YPrCYh",
            "A6JS4r6BucWmrMXeTuuxbVCrS9iHPckeBf",
            "doge1qlg5uydlgue7ywqcnt6rumf8743pm5usr5rlvmd",
        )

    def test_addresses_from_bad_hex(self):
        with pytest.raises(AddressError):
            addresses_from_pubkey(MAINNET, "zz")

    def test_addresses_from_invalid_point(self):
        with pytest.raises(AddressError):
            addresses_from_pubkey(MAINNET, "02" + "ff" * 32)

    def test_address_from_privkey(self):
        secret, _ = decode_wif(WIF, MAINNET)
        expected = addresses_from_pubkey(MAINNET, WIF_PUBKEY)[0]
        assert address_from_privkey(secret.hex()) == expected

    def test_address_from_bad_privkey(self):
        with pytest.raises(InvalidKeyError):
            address_from_privkey("00" * 32)


class TestKeypair:
    def test_generate_and_verify(self):
        wif, address = generate_priv_pub_keypair()
        assert address.startswith("D")
        assert verify_priv_pub_keypair(wif, address)

    def test_testnet(self):
        wif, address = generate_priv_pub_keypair(is_testnet=True)
        assert address.startswith("n")
        assert verify_priv_pub_keypair(wif, address, is_testnet=True)
        assert not verify_priv_pub_keypair(wif, address, is_testnet=False)

    def test_regtest(self):
        wif, address = generate_priv_pub_keypair(chain=REGTEST)
        assert chain_from_b58_prefix(address) is REGTEST
        assert chain_from_b58_prefix(wif) is REGTEST
        assert verify_priv_pub_keypair(wif, address, chain=REGTEST)
        assert not verify_priv_pub_keypair(wif, address, is_testnet=True)

    def test_flipped_address(self):
        wif, address = generate_priv_pub_keypair()
        assert not verify_priv_pub_keypair(wif, _flip_last(address))

    def test_other_key(self):
        wif, _ = generate_priv_pub_keypair()
        _, other_address = generate_priv_pub_keypair()
        assert not verify_priv_pub_keypair(wif, other_address)

    def test_garbage_wif(self):
        assert not verify_priv_pub_keypair("garbage", "DTwqVfB7tbwca2PzwBvPV1g1xDB2YPrCYh")


class TestHDMaster:
    def test_generate_and_verify(self):
        master, address = generate_hd_master_pub_keypair()
        assert master.startswith("dgpv")
        assert address.startswith("D")
        assert verify_hd_master_pub_keypair(master, address)

    def test_testnet(self):
        master, address = generate_hd_master_pub_keypair(is_testnet=True)
        assert master.startswith("tprv")
        assert verify_hd_master_pub_keypair(master, address, is_testnet=True)

    def test_regtest(self):
        master, address = generate_hd_master_pub_keypair(chain=REGTEST)
        assert chain_from_b58_prefix(address) is REGTEST
        assert verify_hd_master_pub_keypair(master, address, chain=REGTEST)
        assert not verify_hd_master_pub_keypair(master, address, is_testnet=True)

    def test_mismatch(self):
        master, _ = generate_hd_master_pub_keypair()
        _, other = generate_hd_master_pub_keypair()
        assert not verify_hd_master_pub_keypair(master, other)

    def test_corrupted_master(self):
        master, address = generate_hd_master_pub_keypair()
        assert not verify_hd_master_pub_keypair(_flip_last(master), address)

    def test_gen_master_prefix(self):
        assert hd_gen_master(MAINNET).startswith("dgpv")
        assert hd_gen_master(TESTNET).startswith("tprv")

    def test_derived_hd_pubkey(self):
        master, address = generate_hd_master_pub_keypair()
        assert generate_derived_hd_pubkey(master) == address

    def test_derived_hd_pubkey_bad_key(self):
        with pytest.raises(HDKeyError):
            generate_derived_hd_pubkey("notakey")


class TestVerifyAddress:
    def test_valid(self):
        assert verify_p2pkh_address("DTwqVfB7tbwca2PzwBvPV1g1xDB2YPrCYh")
        assert verify_p2pkh_address("A6JS4r6BucWmrMXeTuuxbVCrS9iHPckeBf")

    def test_flipped(self):
        assert not verify_p2pkh_address(_flip_last("DTwqVfB7tbwca2PzwBvPV1g1xDB2YPrCYh"))

    def test_empty(self):
        assert not verify_p2pkh_address("")

    def test_wrong_length(self):
        assert not verify_p2pkh_address("DTwqVfB7tbwca2Pz")

    def test_bech32_rejected(self):
        assert not verify_p2pkh_address("doge1qlg5uydlgue7ywqcnt6rumf8743pm5usr5rlvmd")


class TestHDDerivation:
    def test_hd_derive_vector(self):
        assert hd_derive(MAINNET, MASTER_KEY, "m/0") == MASTER_CHILD_0

    def test_hd_derive_public_source(self):
        xpub = HDNode.deserialize(MASTER_KEY, MAINNET).serialize_public(MAINNET)
        child = hd_derive(MAINNET, xpub, "m/0")
        assert child == HDNode.deserialize(MASTER_CHILD_0, MAINNET).serialize_public(MAINNET)

    def test_hd_derive_depth_counts_path(self):
        child = HDNode.deserialize(hd_derive(MAINNET, MASTER_KEY, "m/0"), MAINNET)
        assert child.depth == 1
        assert child.fingerprint == 0x48D8F1B2
        assert child.child_num == 0

    def test_by_path_depth_counts_path(self):
        derived = get_derived_hd_address_by_path(MASTER_KEY, "m/0/1", True)
        assert HDNode.deserialize(derived, MAINNET).depth == 2
        assert get_derived_hd_address_by_path(MASTER_KEY, "m/0", True) == MASTER_CHILD_0

    def test_bip44_deterministic(self, mnemonic_master):
        first = get_derived_hd_address(mnemonic_master, 0, False, 0, False)
        second = get_derived_hd_address(mnemonic_master, 0, False, 0, False)
        assert first == second
        assert first.startswith("dgub")

    def test_bip44_matches_path(self, mnemonic_master):
        by_index = get_derived_hd_address(mnemonic_master, 0, False, 0, True)
        by_path = get_derived_hd_address_by_path(mnemonic_master, "m/44'/3'/0'/0/0", True)
        assert by_index == by_path
        assert by_index.startswith("dgpv")

    def test_index_and_change_differ(self, mnemonic_master):
        base = get_derived_hd_address(mnemonic_master, 0, False, 0, False)
        assert get_derived_hd_address(mnemonic_master, 0, False, 1, False) != base
        assert get_derived_hd_address(mnemonic_master, 0, True, 0, False) != base
        assert get_derived_hd_address(mnemonic_master, 1, False, 0, False) != base

    def test_testnet_coin_type(self, test_mnemonic):
        master = HDNode.from_seed(mnemonic_to_seed(test_mnemonic)).serialize_private(TESTNET)
        by_index = get_derived_hd_address(master, 0, False, 0, True)
        assert by_index == get_derived_hd_address_by_path(master, "m/44'/1'/0'/0/0", True)

    def test_public_master_non_hardened(self, mnemonic_master):
        account = get_derived_hd_address_by_path(mnemonic_master, "m/44'/3'/0'", False)
        from_public = get_derived_hd_address_by_path(account, "m/0/0", False)
        from_master = get_derived_hd_address(mnemonic_master, 0, False, 0, False)
        # Same key and chain code; depth counts only the steps taken from the account key
        public_node = HDNode.deserialize(from_public, MAINNET)
        master_node = HDNode.deserialize(from_master, MAINNET)
        assert public_node.public_key == master_node.public_key
        assert public_node.chain_code == master_node.chain_code
        assert (public_node.depth, master_node.depth) == (2, 5)

    def test_public_master_hardened_fails(self, mnemonic_master):
        xpub = get_derived_hd_address_by_path(mnemonic_master, "m", False)
        with pytest.raises(HDKeyError):
            get_derived_hd_address_by_path(xpub, "m/44'", False)

    def test_public_master_private_output_fails(self, mnemonic_master):
        xpub = get_derived_hd_address_by_path(mnemonic_master, "m", False)
        with pytest.raises(HDKeyError):
            get_derived_hd_address_by_path(xpub, "m/0", True)

    def test_bad_path(self, mnemonic_master):
        with pytest.raises(HDKeyError):
            get_derived_hd_address_by_path(mnemonic_master, "44'/3'", False)


class TestMnemonicWallet:
    def test_address(self, test_mnemonic):
        address = get_derived_hd_address_from_mnemonic(0, 0, 0, test_mnemonic)
        expected = (
            HDNode.from_seed(mnemonic_to_seed(test_mnemonic))
            .derive("m/44'/3'/0'/0/0")
            .p2pkh_address(MAINNET)
        )
        assert address == expected
        assert address.startswith("D")

    def test_passphrase_changes_address(self, test_mnemonic):
        assert get_derived_hd_address_from_mnemonic(
            0, 0, 0, test_mnemonic
        ) != get_derived_hd_address_from_mnemonic(0, 0, 0, test_mnemonic, "TREZOR")

    def test_index_changes_address(self, test_mnemonic):
        assert get_derived_hd_address_from_mnemonic(
            0, 0, 0, test_mnemonic
        ) != get_derived_hd_address_from_mnemonic(0, 1, 0, test_mnemonic)

    def test_testnet(self, test_mnemonic):
        address = get_derived_hd_address_from_mnemonic(0, 0, 0, test_mnemonic, is_testnet=True)
        assert address.startswith("n")

    def test_regtest(self, test_mnemonic):
        address = get_derived_hd_address_from_mnemonic(0, 0, 0, test_mnemonic, chain=REGTEST)
        expected = (
            HDNode.from_seed(mnemonic_to_seed(test_mnemonic))
            .derive("m/44'/1'/0'/0/0")
            .p2pkh_address(REGTEST)
        )
        assert address == expected

    def test_master_keypair_regtest(self, test_mnemonic):
        master, address = generate_hd_master_pub_keypair_from_mnemonic(
            test_mnemonic, chain=REGTEST
        )
        assert chain_from_b58_prefix(address) is REGTEST
        assert verify_hd_master_pub_keypair_from_mnemonic(
            master, address, test_mnemonic, chain=REGTEST
        )
        assert not verify_hd_master_pub_keypair_from_mnemonic(
            master, address, test_mnemonic, is_testnet=True
        )

    def test_master_keypair(self, test_mnemonic, mnemonic_master):
        master, address = generate_hd_master_pub_keypair_from_mnemonic(test_mnemonic)
        assert master == mnemonic_master
        assert verify_hd_master_pub_keypair_from_mnemonic(master, address, test_mnemonic)

    def test_master_keypair_wrong_passphrase(self, test_mnemonic):
        master, address = generate_hd_master_pub_keypair_from_mnemonic(test_mnemonic)
        assert not verify_hd_master_pub_keypair_from_mnemonic(
            master, address, test_mnemonic, "TREZOR"
        )

    def test_empty_mnemonic(self):
        with pytest.raises(HDKeyError):
            get_derived_hd_address_from_mnemonic(0, 0, 0, "")
        assert not verify_hd_master_pub_keypair_from_mnemonic("x", "y", "")


class TestPrintNode:
    def test_fields(self):
        fields = hd_print_node(MAINNET, MASTER_KEY)
        assert fields["depth"] == 1
        assert fields["child index"] == 3
        assert fields["parent fingerprint"] == "d92d8ecf"
        assert fields["p2pkh address"] == generate_derived_hd_pubkey(MASTER_KEY)
        assert str(fields["extended pubkey"]).startswith("dgub")

    def test_child_fields(self):
        fields = hd_print_node(MAINNET, MASTER_CHILD_0)
        assert fields["depth"] == 1
        assert fields["parent fingerprint"] != "00000000"

    def test_no_private_material(self):
        fields = hd_print_node(MAINNET, MASTER_KEY)
        derived = [value for name, value in fields.items() if name != "ext key"]
        assert not any(str(value).startswith("dgpv") for value in derived)
