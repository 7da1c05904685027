"""
Signature Verifier

Checks that a wallet signed a challenge message with the key behind its address.

Supported:
- Addresses: SS58 (any 1- or 2-byte network prefix) or 0x-prefixed 32-byte hex keys
- Signatures: Ed25519 or Sr25519, raw 64 bytes or a 65-byte MultiSignature
  tagged 0x00 (Ed25519) or 0x01 (Sr25519); untagged signatures try both schemes
- Payloads: the message bytes as-is, or wrapped in <Bytes>...</Bytes> by browser extensions
"""

import hashlib
import hmac
import logging
from typing import Optional, Tuple

import base58
import sr25519
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 8192
MAX_ADDRESS_LENGTH = 128
MAX_SIGNATURE_LENGTH = 260

PUBLIC_KEY_LENGTH = 32
SIGNATURE_LENGTH = 64
CHECKSUM_LENGTH = 2
ED25519 = "ed25519"
SR25519 = "sr25519"
MULTISIG_SCHEMES = {0x00: (ED25519,), 0x01: (SR25519,)}
UNTAGGED_SCHEMES = (ED25519, SR25519)
SS58_CHECKSUM_PREFIX = b"SS58PRE"


def _ss58_checksum(payload: bytes) -> bytes:
    return hashlib.blake2b(SS58_CHECKSUM_PREFIX + payload, digest_size=64).digest()[:CHECKSUM_LENGTH]


def encode_address(public_key: bytes, prefix: int = 42) -> str:
    """SS58-encode a 32-byte public key for the given network prefix (0-16383)"""
    if len(public_key) != PUBLIC_KEY_LENGTH:
        raise ValueError("Public key must be 32 bytes")

    if 0 <= prefix < 64:
        prefix_bytes = bytes([prefix])
    elif 64 <= prefix < 16384:
        first = ((prefix & 0b1111_1100) >> 2) | 0b0100_0000
        second = (prefix >> 8) | ((prefix & 0b0000_0011) << 6)
        prefix_bytes = bytes([first, second])
    else:
        raise ValueError("SS58 prefix out of range")

    payload = prefix_bytes + public_key
    return base58.b58encode(payload + _ss58_checksum(payload)).decode()


def decode_address(address: str) -> Optional[bytes]:
    """Public key bytes behind an address, None if it is malformed or fails its checksum"""
    if address.startswith("0x"):
        try:
            raw = bytes.fromhex(address[2:])
        except ValueError:
            return None
        return raw if len(raw) == PUBLIC_KEY_LENGTH else None

    try:
        data = base58.b58decode(address)
    except ValueError:
        return None

    if not data or data[0] > 127:
        return None

    # Bit 6 of the first byte marks the two-byte prefix form
    prefix_length = 2 if data[0] & 0b0100_0000 else 1
    if len(data) != prefix_length + PUBLIC_KEY_LENGTH + CHECKSUM_LENGTH:
        return None

    payload, checksum = data[:-CHECKSUM_LENGTH], data[-CHECKSUM_LENGTH:]
    if not hmac.compare_digest(_ss58_checksum(payload), checksum):
        return None
    return payload[prefix_length:]


def decode_signature(signature: str) -> Optional[Tuple[bytes, Tuple[str, ...]]]:
    """
    Raw signature bytes and the schemes to try, from hex.

    None for ECDSA or unknown MultiSignature tags and bad encodings.
    """
    hex_value = signature[2:] if signature.startswith("0x") else signature
    try:
        raw = bytes.fromhex(hex_value)
    except ValueError:
        return None

    if len(raw) == SIGNATURE_LENGTH:
        return raw, UNTAGGED_SCHEMES
    if len(raw) == SIGNATURE_LENGTH + 1 and raw[0] in MULTISIG_SCHEMES:
        return raw[1:], MULTISIG_SCHEMES[raw[0]]
    return None


def _verify_ed25519(signature: bytes, payload: bytes, public_key: bytes) -> bool:
    try:
        Ed25519PublicKey.from_public_bytes(public_key).verify(signature, payload)
    except (InvalidSignature, ValueError):
        return False
    return True


def _verify_sr25519(signature: bytes, payload: bytes, public_key: bytes) -> bool:
    try:
        return bool(sr25519.verify(signature, payload, public_key))
    except ValueError:
        return False


VERIFIERS = {ED25519: _verify_ed25519, SR25519: _verify_sr25519}


class SignatureVerifier:
    """
    Ed25519 and Sr25519 verification of challenge signatures.

    verify() is CPU-bound and synchronous; callers on the event loop run it in a
    worker thread. It never raises: every malformed input is a failed verification.
    """

    def __init__(self, ss58_prefix: int = 42):
        self.ss58_prefix = ss58_prefix

    def verify(self, message: str, signature: str, address: str) -> bool:
        if not message or not signature or not address:
            return False
        if (
            len(message) > MAX_MESSAGE_LENGTH
            or len(address) > MAX_ADDRESS_LENGTH
            or len(signature) > MAX_SIGNATURE_LENGTH
        ):
            return False

        key_bytes = decode_address(address)
        if key_bytes is None:
            logger.debug("Rejecting signature: undecodable address")
            return False

        decoded = decode_signature(signature)
        if decoded is None:
            logger.debug("Rejecting signature: unsupported signature encoding")
            return False
        signature_bytes, schemes = decoded

        message_bytes = message.encode("utf-8")
        for payload in (message_bytes, b"<Bytes>" + message_bytes + b"</Bytes>"):
            for scheme in schemes:
                if VERIFIERS[scheme](signature_bytes, payload, key_bytes):
                    return True
        return False

    def decode_address(self, address: str) -> Optional[bytes]:
        return decode_address(address)

    def encode_address(self, public_key: bytes, prefix: Optional[int] = None) -> str:
        return encode_address(public_key, self.ss58_prefix if prefix is None else prefix)
