"""
Identity Number Encryption

Field-level encryption for the government identity numbers on jobseeker
profiles (SIN, passport, driver's licence).

SECURITY REQUIREMENTS:
- ENCRYPTION_MASTER_KEY must be set in production (64 hex chars)
- Uses AES-256-GCM for authenticated encryption
- Every field type gets its own derived key

Usage:
    class JobseekerProfile(Base):
        sin_number = Column(EncryptedString("sin"))

The ORM attribute always holds the plaintext; only ciphertext reaches the
database. Responses show ``mask_identifier(value)`` to anyone who may not
see the full number.
"""

import base64
import hashlib
import logging
import os
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from sqlalchemy import String
from sqlalchemy.types import TypeDecorator

logger = logging.getLogger(__name__)


# =============================================================================
# KEY MANAGEMENT
# =============================================================================

class EncryptionKeyError(Exception):
    """Raised when the encryption key is missing or invalid."""


_master_key: Optional[bytes] = None


def _load_master_key() -> bytes:
    """
    ENCRYPTION_MASTER_KEY from the environment.

    Outside production a fixed development key is used when it is unset,
    so local data stays readable across restarts. It protects nothing.
    """
    key_hex = os.environ.get("ENCRYPTION_MASTER_KEY")
    if not key_hex:
        environment = os.environ.get("APP_ENVIRONMENT", "development").lower()
        if environment in ("production", "prod", "staging"):
            raise EncryptionKeyError(f"ENCRYPTION_MASTER_KEY is required when APP_ENVIRONMENT={environment}")
        logger.warning("ENCRYPTION_MASTER_KEY is not set; identity numbers use an insecure development key")
        key_hex = hashlib.sha256(b"DEV-ONLY-INSECURE-KEY").hexdigest()

    try:
        key_bytes = bytes.fromhex(key_hex)
    except ValueError:
        raise EncryptionKeyError("ENCRYPTION_MASTER_KEY must be a hex string")
    if len(key_bytes) < 32:
        raise EncryptionKeyError("ENCRYPTION_MASTER_KEY must be at least 32 bytes (64 hex chars)")
    return key_bytes[:32]


def get_master_key() -> bytes:
    global _master_key
    if _master_key is None:
        _master_key = _load_master_key()
    return _master_key


def reset_master_key() -> None:
    """Forget the cached key (tests switch ENCRYPTION_MASTER_KEY)."""
    global _master_key
    _master_key = None


# =============================================================================
# ENCRYPTION
# =============================================================================

ENCRYPTION_VERSION = 1
TAG_SIZE = 16

# Domain separation: a SIN ciphertext cannot be decrypted as a passport number
FIELD_CONTEXTS = {
    "sin": b"pii:sin:v1",
    "passport": b"pii:passport:v1",
    "license": b"pii:license:v1",
    "generic": b"pii:generic:v1",
}


def _derive_field_key(field_type: str) -> bytes:
    context = FIELD_CONTEXTS.get(field_type, FIELD_CONTEXTS["generic"])
    return hashlib.sha256(get_master_key() + context).digest()


def _b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii")


def encrypt_pii(plaintext: str, field_type: str = "generic") -> str:
    """
    Encrypt one identity number.

    Returns:
        ``v{version}:{nonce}:{ciphertext}:{tag}``, each part urlsafe base64;
        a fresh random nonce every call
    """
    if not plaintext:
        return ""
    nonce = os.urandom(12)
    sealed = AESGCM(_derive_field_key(field_type)).encrypt(nonce, plaintext.encode("utf-8"), None)
    return f"v{ENCRYPTION_VERSION}:{_b64(nonce)}:{_b64(sealed[:-TAG_SIZE])}:{_b64(sealed[-TAG_SIZE:])}"


def decrypt_pii(ciphertext: str, field_type: str = "generic") -> str:
    """
    Reverse encrypt_pii().

    Raises:
        ValueError: Malformed ciphertext, wrong key or tampered data
    """
    if not ciphertext:
        return ""
    try:
        version, nonce, data, tag = ciphertext.split(":")
        if version != f"v{ENCRYPTION_VERSION}":
            raise ValueError(f"unsupported version {version}")
        nonce_b = base64.urlsafe_b64decode(nonce)
        sealed = base64.urlsafe_b64decode(data) + base64.urlsafe_b64decode(tag)
    except ValueError as e:
        raise ValueError(f"Failed to parse ciphertext: {e}")

    try:
        plaintext = AESGCM(_derive_field_key(field_type)).decrypt(nonce_b, sealed, None)
    except InvalidTag:
        logger.error(f"Decryption failed for a {field_type} field")
        raise ValueError("Decryption failed - invalid key or corrupted data")
    return plaintext.decode("utf-8")


def is_encrypted(value: Optional[str]) -> bool:
    """True for empty values and values in the encrypt_pii() format."""
    if not value:
        return True
    return value.startswith(f"v{ENCRYPTION_VERSION}:") and value.count(":") == 3


def mask_identifier(value: Optional[str], visible: int = 3) -> Optional[str]:
    """
    Mask an identity number for display, keeping the last ``visible`` characters.

    Examples:
        >>> mask_identifier("123 456 789")
        '******789'
        >>> mask_identifier("AB12")
        '****'
    """
    if not value:
        return value
    compact = "".join(c for c in value if c.isalnum())
    if len(compact) <= visible + 1:
        return "*" * len(compact)
    return "*" * (len(compact) - visible) + compact[-visible:]


# =============================================================================
# COLUMN TYPE
# =============================================================================

class EncryptedString(TypeDecorator):
    """
    String column stored as AES-GCM ciphertext.

    Rows written before encryption was enabled still load: values not in
    the encrypted format are returned as they are and encrypted on their
    next write.
    """
    impl = String(255)
    cache_ok = True

    def __init__(self, field_type: str = "generic", *args, **kwargs):
        self.field_type = field_type
        super().__init__(*args, **kwargs)

    def process_bind_param(self, value, dialect):
        if value is None or value == "":
            return value
        return encrypt_pii(str(value), self.field_type)

    def process_result_value(self, value, dialect):
        if value is None or value == "":
            return value
        if not is_encrypted(value):
            return value
        return decrypt_pii(value, self.field_type)
