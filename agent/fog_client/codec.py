"""
Envelope codec and the crypto primitives behind it.

Encrypted server bodies start with a flag and carry ``<hex iv>|<hex data>``,
AES-CBC with zero-byte padding:

  #!en=<iv>|<data>      ordinary encrypted reply
  #!enkey=<iv>|<data>   reply to the key-exchange POST

Both flags use the same cipher and the current session key. Anything without
a flag is plaintext and passes through untouched.
"""

import base64
import binascii
import os
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .config import get_logger
from .constants import AES_BLOCK_BYTES, ENCRYPTED_FLAG, KEY_EXCHANGE_FLAG, SESSION_KEY_BYTES
from .errors import DecodeError, TrustError

log = get_logger("Encryption")


class EnvelopeKind(Enum):
    PLAIN = "plain"
    ENCRYPTED = "encrypted"
    KEY_EXCHANGE = "key-exchange"


# ─── Transforms ──────────────────────────────────────────────────

def bytes_to_hex(data: bytes) -> str:
    return binascii.hexlify(data).decode("ascii")


def hex_to_bytes(text: str) -> bytes:
    try:
        return binascii.unhexlify((text or "").strip())
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Invalid hex string: {e}") from e


def decode_base64(text: str) -> str:
    """Base64 -> UTF-8 text. Raises DecodeError on malformed input."""
    try:
        return base64.b64decode((text or "").strip(), validate=True).decode("utf-8")
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Invalid base64 string: {e}") from e


# ─── AES ─────────────────────────────────────────────────────────

def generate_session_key() -> bytes:
    return os.urandom(SESSION_KEY_BYTES)


def aes_encrypt(plaintext: str, key: bytes, iv: bytes = None) -> str:
    """Encrypt to ``<hex iv>|<hex data>`` with zero-byte padding."""
    if not key:
        raise DecodeError("No session key to encrypt with")
    iv = iv or os.urandom(AES_BLOCK_BYTES)
    data = plaintext.encode("utf-8")
    remainder = len(data) % AES_BLOCK_BYTES
    if remainder:
        data += b"\x00" * (AES_BLOCK_BYTES - remainder)

    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    encrypted = encryptor.update(data) + encryptor.finalize()
    return bytes_to_hex(iv) + "|" + bytes_to_hex(encrypted)


def aes_decrypt(payload: str, key: bytes) -> str:
    """Reverse of aes_encrypt. Trailing NUL padding is stripped."""
    if not key:
        raise DecodeError("Encrypted payload received but no session key is set")
    if "|" not in payload:
        raise DecodeError("Encrypted payload is missing its IV separator")

    iv_hex, data_hex = payload.split("|", 1)
    iv = hex_to_bytes(iv_hex)
    data = hex_to_bytes(data_hex)
    try:
        decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
        decrypted = decryptor.update(data) + decryptor.finalize()
        return decrypted.rstrip(b"\x00").decode("utf-8")
    except (ValueError, UnicodeDecodeError) as e:
        raise DecodeError(f"Could not decrypt payload: {e}") from e


# ─── Envelope ────────────────────────────────────────────────────

def unwrap(raw: str, key: bytes):
    """Return (EnvelopeKind, plaintext) for a raw reply body."""
    if raw.startswith(KEY_EXCHANGE_FLAG):
        return EnvelopeKind.KEY_EXCHANGE, aes_decrypt(raw[len(KEY_EXCHANGE_FLAG):], key)
    if raw.startswith(ENCRYPTED_FLAG):
        return EnvelopeKind.ENCRYPTED, aes_decrypt(raw[len(ENCRYPTED_FLAG):], key)
    return EnvelopeKind.PLAIN, raw


def decode(raw: str, key: bytes) -> str:
    return unwrap(raw, key)[1]


def encode(plaintext: str, key: bytes, key_exchange: bool = False) -> str:
    flag = KEY_EXCHANGE_FLAG if key_exchange else ENCRYPTED_FLAG
    return flag + aes_encrypt(plaintext, key)


# ─── Certificates / RSA ──────────────────────────────────────────

def load_certificate(path) -> x509.Certificate:
    """Load a PEM or DER certificate file."""
    data = Path(path).read_bytes()
    try:
        if b"-----BEGIN" in data:
            return x509.load_pem_x509_certificate(data)
        return x509.load_der_x509_certificate(data)
    except ValueError as e:
        raise TrustError(f"Could not load certificate {path}: {e}") from e


def is_from_ca(ca_cert: x509.Certificate, cert: x509.Certificate) -> bool:
    """True if ``cert`` is signed by ``ca_cert`` and currently valid."""
    try:
        cert.verify_directly_issued_by(ca_cert)
    except (ValueError, TypeError, InvalidSignature) as e:
        log.error("Certificate is not from the pinned CA: %s", e)
        return False

    now = datetime.now(timezone.utc)
    if not (cert.not_valid_before_utc <= now <= cert.not_valid_after_utc):
        log.error("Certificate is outside its validity period")
        return False
    return True


def rsa_encrypt(cert: x509.Certificate, data: bytes) -> str:
    """PKCS#1 v1.5 encrypt under the certificate's public key, hex encoded."""
    encrypted = cert.public_key().encrypt(data, padding.PKCS1v15())
    return bytes_to_hex(encrypted)
