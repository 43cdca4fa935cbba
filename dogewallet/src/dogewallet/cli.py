"""
Dogecoin Wallet CLI - Generate keys, derive HD addresses, sign messages and transactions.
"""

from __future__ import annotations

import sys

import typer
from dogecore.chainparams import ChainParams, UnknownNetworkError, get_chain
from dogecore.keys import AddressError, InvalidKeyError, decode_wif
from loguru import logger

from dogewallet.config import get_settings
from dogewallet.wallet.address import (
    addresses_from_pubkey,
    gen_privatekey,
    generate_hd_master_pub_keypair,
    get_derived_hd_address,
    get_derived_hd_address_by_path,
    get_derived_hd_address_from_mnemonic,
    hd_derive,
    hd_print_node,
    pubkey_from_privatekey,
    verify_p2pkh_address,
    verify_priv_pub_keypair,
)
from dogewallet.wallet.bip32 import HDKeyError, generate_mnemonic, mnemonic_is_valid
from dogewallet.wallet.message import sign_message_with_private_key, verify_message
from dogewallet.wallet.script import ScriptError, classify_script
from dogewallet.wallet.signing import SignFailure, sign_input
from dogewallet.wallet.transaction import Transaction, TransactionParseError

app = typer.Typer(
    name="doge-wallet",
    help="Dogecoin key, address and transaction tool",
    add_completion=False,
)


def setup_logging(level: str = "INFO") -> None:
    """Configure loguru logging."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    )


def _resolve_chain(network: str | None) -> ChainParams:
    settings = get_settings()
    setup_logging(settings.log_level)
    if network is None:
        return settings.chain
    try:
        return get_chain(network)
    except (ValueError, UnknownNetworkError):
        logger.error(f"Unknown network: {network}")
        raise typer.Exit(1)


@app.command()
def generate_keypair(
    network: str = typer.Option(None, "--network", "-n", help="mainnet | testnet | regtest"),
) -> None:
    """Generate a new private key and its P2PKH address."""
    chain = _resolve_chain(network)
    wif, privkey_hex = gen_privatekey(chain)
    node_pub = pubkey_from_privatekey(chain, wif)
    address = addresses_from_pubkey(chain, node_pub)[0]

    typer.echo(f"privatekey WIF: {wif}")
    typer.echo(f"privatekey HEX: {privkey_hex}")
    typer.echo(f"pubkey: {node_pub}")
    typer.echo(f"p2pkh address: {address}")


@app.command()
def generate_hd_master(
    network: str = typer.Option(None, "--network", "-n", help="mainnet | testnet | regtest"),
) -> None:
    """Generate a new HD master key."""
    chain = _resolve_chain(network)
    master, address = generate_hd_master_pub_keypair(chain=chain)
    typer.echo(f"masterkey: {master}")
    typer.echo(f"p2pkh address: {address}")


@app.command(name="generate-mnemonic")
def generate_mnemonic_cmd(
    word_count: int = typer.Option(24, "--words", "-w", help="Number of words (12-24)"),
) -> None:
    """Generate a new BIP39 mnemonic phrase."""
    setup_logging(get_settings().log_level)
    try:
        mnemonic = generate_mnemonic(word_count)
    except ValueError as e:
        logger.error(f"Failed to generate mnemonic: {e}")
        raise typer.Exit(1)

    typer.echo(mnemonic)


@app.command()
def pubkey_from_wif(
    wif: str = typer.Argument(..., help="WIF private key"),
    network: str = typer.Option(None, "--network", "-n"),
) -> None:
    """Print the compressed public key for a WIF private key."""
    chain = _resolve_chain(network)
    try:
        typer.echo(pubkey_from_privatekey(chain, wif))
    except InvalidKeyError as e:
        logger.error(f"Invalid private key: {e}")
        raise typer.Exit(1)


@app.command(name="addresses-from-pubkey")
def addresses_from_pubkey_cmd(
    pubkey: str = typer.Argument(..., help="Public key hex"),
    network: str = typer.Option(None, "--network", "-n"),
) -> None:
    """Print P2PKH, P2SH-P2WPKH and P2WPKH addresses for a public key."""
    chain = _resolve_chain(network)
    try:
        p2pkh, p2sh_p2wpkh, p2wpkh = addresses_from_pubkey(chain, pubkey)
    except AddressError as e:
        logger.error(f"Invalid public key: {e}")
        raise typer.Exit(1)

    typer.echo(f"p2pkh address: {p2pkh}")
    typer.echo(f"p2sh-p2wpkh address: {p2sh_p2wpkh}")
    typer.echo(f"p2wpkh address: {p2wpkh}")


@app.command()
def verify_keypair(
    wif: str = typer.Argument(..., help="WIF private key"),
    address: str = typer.Argument(..., help="P2PKH address"),
    network: str = typer.Option(None, "--network", "-n"),
) -> None:
    """Check that a WIF key controls an address."""
    chain = _resolve_chain(network)
    if not verify_priv_pub_keypair(wif, address, chain=chain):
        logger.error("Key pair does not match")
        raise typer.Exit(1)
    typer.echo("valid")


@app.command()
def verify_address(address: str = typer.Argument(..., help="P2PKH or P2SH address")) -> None:
    """Check an address's base58 checksum."""
    setup_logging(get_settings().log_level)
    if not verify_p2pkh_address(address):
        logger.error("Invalid address")
        raise typer.Exit(1)
    typer.echo("valid")


@app.command()
def derive(
    masterkey: str = typer.Argument(..., help="Extended private or public key"),
    account: int = typer.Option(None, "--account", "-a", help="BIP44 account"),
    change: bool = typer.Option(False, "--change", help="Derive a change (internal) key"),
    index: int = typer.Option(0, "--index", "-i", help="Address index"),
    private: bool = typer.Option(False, "--private", help="Output extended private key"),
) -> None:
    """Derive the BIP44 key m/44'/coin'/account'/change/index."""
    settings = get_settings()
    setup_logging(settings.log_level)
    if account is None:
        account = settings.bip44_account
    try:
        typer.echo(get_derived_hd_address(masterkey, account, change, index, private))
    except HDKeyError as e:
        logger.error(f"Derivation failed: {e}")
        raise typer.Exit(1)


@app.command()
def derive_path(
    masterkey: str = typer.Argument(..., help="Extended private or public key"),
    path: str = typer.Argument(..., help="Derivation path, e.g. m/44'/3'/0'/0/0"),
    private: bool = typer.Option(False, "--private", help="Output extended private key"),
) -> None:
    """Derive an extended key along an arbitrary path."""
    setup_logging(get_settings().log_level)
    try:
        typer.echo(get_derived_hd_address_by_path(masterkey, path, private))
    except HDKeyError as e:
        logger.error(f"Derivation failed: {e}")
        raise typer.Exit(1)


@app.command(name="hd-derive")
def hd_derive_cmd(
    masterkey: str = typer.Argument(..., help="Extended private or public key"),
    path: str = typer.Argument(..., help="Derivation path"),
    network: str = typer.Option(None, "--network", "-n"),
) -> None:
    """Derive along a path, keeping the source key's private/public kind."""
    chain = _resolve_chain(network)
    try:
        typer.echo(hd_derive(chain, masterkey, path))
    except HDKeyError as e:
        logger.error(f"Derivation failed: {e}")
        raise typer.Exit(1)


@app.command()
def derive_mnemonic(
    mnemonic: str = typer.Option(..., "--mnemonic", envvar="MNEMONIC", help="BIP39 mnemonic"),
    passphrase: str = typer.Option("", "--passphrase", "-p", help="BIP39 passphrase"),
    account: int = typer.Option(None, "--account", "-a"),
    change: bool = typer.Option(False, "--change"),
    index: int = typer.Option(0, "--index", "-i"),
    network: str = typer.Option(None, "--network", "-n"),
) -> None:
    """Derive the BIP44 P2PKH address of a mnemonic wallet."""
    chain = _resolve_chain(network)
    if account is None:
        account = get_settings().bip44_account
    if not mnemonic_is_valid(mnemonic):
        logger.warning("Mnemonic checksum does not validate against the English wordlist")
    try:
        address = get_derived_hd_address_from_mnemonic(
            account, index, int(change), mnemonic, passphrase, chain=chain
        )
    except HDKeyError as e:
        logger.error(f"Derivation failed: {e}")
        raise typer.Exit(1)
    typer.echo(address)


@app.command(name="hd-print-node")
def hd_print_node_cmd(
    masterkey: str = typer.Argument(..., help="Extended private or public key"),
    network: str = typer.Option(None, "--network", "-n"),
) -> None:
    """Print the fields of an extended key."""
    chain = _resolve_chain(network)
    try:
        fields = hd_print_node(chain, masterkey)
    except HDKeyError as e:
        logger.error(f"Invalid extended key: {e}")
        raise typer.Exit(1)

    for name, value in fields.items():
        typer.echo(f"{name}: {value}")


@app.command()
def sign_message(
    privkey: str = typer.Argument(..., help="Private key (hex or WIF)"),
    message: str = typer.Argument(..., help="Message to sign"),
) -> None:
    """Sign a message, printing the base64 signature."""
    setup_logging(get_settings().log_level)
    try:
        typer.echo(sign_message_with_private_key(privkey, message))
    except InvalidKeyError as e:
        logger.error(f"Invalid private key: {e}")
        raise typer.Exit(1)


@app.command(name="verify-message")
def verify_message_cmd(
    address: str = typer.Argument(..., help="Claimed signer address"),
    signature: str = typer.Argument(..., help="Base64 signature"),
    message: str = typer.Argument(..., help="Signed message"),
) -> None:
    """Verify a message signature against an address."""
    setup_logging(get_settings().log_level)
    if not verify_message(address, signature, message):
        logger.error("Signature does not verify")
        raise typer.Exit(1)
    typer.echo("valid")


@app.command()
def decode_tx(tx_hex: str = typer.Argument(..., help="Raw transaction hex")) -> None:
    """Decode a raw transaction."""
    setup_logging(get_settings().log_level)
    try:
        tx = Transaction.from_hex(tx_hex)
    except TransactionParseError as e:
        logger.error(f"Failed to parse transaction: {e}")
        raise typer.Exit(1)

    typer.echo(f"txid: {tx.txid}")
    typer.echo(f"version: {tx.version}")
    typer.echo(f"locktime: {tx.locktime}")
    typer.echo(f"coinbase: {tx.is_coinbase()}")
    typer.echo(f"inputs: {len(tx.vin)}")
    for i, txin in enumerate(tx.vin):
        typer.echo(f"  [{i}] {txin.prevout.hash[::-1].hex()}:{txin.prevout.index}")
    typer.echo(f"outputs: {len(tx.vout)}")
    for i, txout in enumerate(tx.vout):
        try:
            kind = classify_script(txout.script_pubkey).type.value
        except ScriptError:
            kind = "invalid"
        typer.echo(f"  [{i}] {txout.value} koinu ({kind})")


@app.command()
def sign_tx_input(
    tx_hex: str = typer.Argument(..., help="Raw transaction hex"),
    script: str = typer.Argument(..., help="scriptPubKey hex of the spent output"),
    wif: str = typer.Argument(..., help="WIF private key"),
    input_index: int = typer.Option(0, "--input", "-i"),
    amount: int = typer.Option(0, "--amount", help="Spent output value in koinu"),
    sighash_type: int = typer.Option(None, "--sighash", help="Sighash type flags"),
    network: str = typer.Option(None, "--network", "-n"),
) -> None:
    """Sign one input of a raw transaction and print the updated transaction."""
    chain = _resolve_chain(network)
    if sighash_type is None:
        sighash_type = get_settings().default_sighash_type

    try:
        tx = Transaction.from_hex(tx_hex)
        secret, _ = decode_wif(wif, chain)
        script_bytes = bytes.fromhex(script)
    except (TransactionParseError, InvalidKeyError, ValueError) as e:
        logger.error(f"Invalid input: {e}")
        raise typer.Exit(1)

    outcome = sign_input(tx, script_bytes, amount, secret, input_index, sighash_type)
    if isinstance(outcome, SignFailure):
        logger.error(f"Signing failed: {outcome.result.describe()} ({outcome.reason})")
        raise typer.Exit(1)
    if not outcome.key_matched:
        logger.warning("Signed with a key the spent script does not commit to (NO_KEY_MATCH)")

    typer.echo(tx.serialize().hex())


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
