import pytest

from src.app.services.signature_verifier import (
    SignatureVerifier,
    decode_address,
    decode_signature,
    encode_address,
)
from tests.fixtures.wallet import Wallet

ALICE_PUBLIC_KEY = bytes.fromhex("d43593c715fdd31c61141abd04a99fd6822c8558854ccde39a5684e7a56da27d")
ALICE_SS58 = "5GrwvaEF5zXb26Fz9rcQpDWS57CtERHpNehXCPcNoHGKutQY"

MESSAGE = (
    "wallet-auth.localhost wants you to sign in with your Polkadot account:\n"
    "0x...\n"
    "\n"
    "Sign this message to authenticate with Wallet Auth\n"
    "\n"
    "URI: http://localhost:8000\n"
    "Version: 1\n"
    "Chain ID: polkadot\n"
    "Nonce: 9f2c4a\n"
    "Issued At: 2025-01-15T12:00:00.000Z"
)


@pytest.fixture
def verifier():
    return SignatureVerifier()


def test_encode_address_matches_known_substrate_address():
    assert encode_address(ALICE_PUBLIC_KEY, 42) == ALICE_SS58


def test_decode_address_returns_public_key():
    assert decode_address(ALICE_SS58) == ALICE_PUBLIC_KEY


def test_decode_address_accepts_hex_public_key():
    assert decode_address("0x" + ALICE_PUBLIC_KEY.hex()) == ALICE_PUBLIC_KEY


def test_decode_address_rejects_bad_checksum():
    # Flip the last character to another base58 digit
    tampered = ALICE_SS58[:-1] + ("Z" if ALICE_SS58[-1] != "Z" else "Y")
    assert decode_address(tampered) is None


@pytest.mark.parametrize("address", ["", "not-base58-0OIl", "0x1234", "0xzz"])
def test_decode_address_rejects_malformed_input(address):
    assert decode_address(address) is None


def test_two_byte_prefix_round_trip():
    """Networks above prefix 63 use the two-byte SS58 form"""
    address = encode_address(ALICE_PUBLIC_KEY, 1284)
    assert address != ALICE_SS58
    assert decode_address(address) == ALICE_PUBLIC_KEY


def test_untagged_signature_tries_both_schemes():
    raw = bytes(range(64))
    assert decode_signature("0x" + raw.hex()) == (raw, ("ed25519", "sr25519"))


@pytest.mark.parametrize("tag,scheme", [("00", "ed25519"), ("01", "sr25519")])
def test_multisignature_tag_selects_scheme(tag, scheme):
    raw = bytes(range(64))
    assert decode_signature("0x" + tag + raw.hex()) == (raw, (scheme,))


def test_decode_signature_rejects_ecdsa_tag():
    raw = bytes(range(65))
    assert decode_signature("0x02" + raw.hex()) is None


def test_valid_signature_verifies(verifier):
    wallet = Wallet()
    assert verifier.verify(MESSAGE, wallet.sign(MESSAGE), wallet.address) is True


def test_bytes_wrapped_signature_verifies(verifier):
    """Browser extensions sign <Bytes>message</Bytes>"""
    wallet = Wallet()
    signature = wallet.sign(MESSAGE, wrap_bytes=True)
    assert verifier.verify(MESSAGE, signature, wallet.address) is True


def test_multisignature_encoding_verifies(verifier):
    wallet = Wallet()
    signature = wallet.sign(MESSAGE, multisig=True)
    assert verifier.verify(MESSAGE, signature, wallet.address) is True


def test_flipped_signature_bit_fails(verifier):
    wallet = Wallet()
    raw = bytearray(bytes.fromhex(wallet.sign(MESSAGE)[2:]))
    raw[10] ^= 0x01
    assert verifier.verify(MESSAGE, "0x" + raw.hex(), wallet.address) is False


def test_modified_message_fails(verifier):
    wallet = Wallet()
    signature = wallet.sign(MESSAGE)
    assert verifier.verify(MESSAGE + " ", signature, wallet.address) is False


def test_signature_from_another_wallet_fails(verifier):
    signer, claimed = Wallet(), Wallet()
    assert verifier.verify(MESSAGE, signer.sign(MESSAGE), claimed.address) is False


@pytest.mark.parametrize(
    "message,signature,address",
    [
        ("", "0x00", ALICE_SS58),
        (MESSAGE, "", ALICE_SS58),
        (MESSAGE, "0x" + "00" * 64, ""),
        ("x" * 8193, "0x" + "00" * 64, ALICE_SS58),
        (MESSAGE, "0x" + "00" * 200, ALICE_SS58),
        (MESSAGE, "0x" + "00" * 64, "5" * 129),
        (MESSAGE, "not hex at all", ALICE_SS58),
    ],
)
def test_malformed_inputs_fail_without_raising(verifier, message, signature, address):
    assert verifier.verify(message, signature, address) is False


def test_verifier_encodes_with_configured_prefix():
    verifier = SignatureVerifier(ss58_prefix=0)
    address = verifier.encode_address(ALICE_PUBLIC_KEY)
    assert address.startswith("1")
    assert verifier.decode_address(address) == ALICE_PUBLIC_KEY


@pytest.mark.parametrize(
    "wrap_bytes,multisig",
    [(False, False), (True, False), (False, True), (True, True)],
)
def test_sr25519_signature_verifies(verifier, wrap_bytes, multisig):
    wallet = Wallet(key_type="sr25519")
    signature = wallet.sign(MESSAGE, wrap_bytes=wrap_bytes, multisig=multisig)
    assert verifier.verify(MESSAGE, signature, wallet.address) is True


def test_sr25519_signature_for_other_message_fails(verifier):
    wallet = Wallet(key_type="sr25519")
    signature = wallet.sign(MESSAGE, wrap_bytes=True)
    assert verifier.verify(MESSAGE + " ", signature, wallet.address) is False


def test_sr25519_signature_from_another_wallet_fails(verifier):
    signer, claimed = Wallet(key_type="sr25519"), Wallet(key_type="sr25519")
    assert verifier.verify(MESSAGE, signer.sign(MESSAGE), claimed.address) is False


def test_sr25519_signature_under_ed25519_tag_fails(verifier):
    wallet = Wallet(key_type="sr25519")
    signature = "0x00" + wallet.sign(MESSAGE)[2:]
    assert verifier.verify(MESSAGE, signature, wallet.address) is False
