"""
PII field cipher: AES-256 over phone numbers and email addresses.

Ciphertext format is Base64(AES-256-ECB(PKCS7(utf-8 plaintext))). The key is
the configured secret's UTF-8 bytes truncated or zero-padded to 32 bytes.

Encryption is deterministic. Duplicate detection compares stored ciphertext
directly (see CustomerRepository.exists_by_phone_encrypted).
Changing the mode or the key handling requires re-encrypting stored data.
"""

from __future__ import annotations

import base64
import binascii
import logging
from functools import lru_cache

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from opshub.core.config import get_settings
from opshub.metrics import observe_crypto_failure
from opshub.platform.security.errors import CryptoError

logger = logging.getLogger("opshub.security.cipher")

KEY_LENGTH = 32
_BLOCK_BITS = algorithms.AES.block_size


def derive_key(secret: str) -> bytes:
    raw = secret.encode("utf-8")
    if len(raw) >= KEY_LENGTH:
        return raw[:KEY_LENGTH]
    return raw.ljust(KEY_LENGTH, b"\x00")


class PiiCipher:
    def __init__(self, secret: str) -> None:
        if secret is None:
            raise CryptoError("Encryption key is not configured")
        self._key = derive_key(secret)

    def _cipher(self) -> Cipher:
        try:
            return Cipher(algorithms.AES(self._key), modes.ECB())
        except ValueError as exc:
            observe_crypto_failure("key")
            logger.error("pii.key_invalid", extra={"error": str(exc)})
            raise CryptoError("Encryption key is invalid") from exc

    def encrypt(self, plaintext: str) -> str:
        try:
            padder = padding.PKCS7(_BLOCK_BITS).padder()
            padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()
            encryptor = self._cipher().encryptor()
            encrypted = encryptor.update(padded) + encryptor.finalize()
        except CryptoError:
            raise
        except (AttributeError, TypeError, ValueError) as exc:
            observe_crypto_failure("encrypt")
            logger.error("pii.encrypt_failed", extra={"error": type(exc).__name__})
            raise CryptoError("Error encrypting data") from exc
        return base64.b64encode(encrypted).decode("ascii")

    def decrypt(self, ciphertext: str) -> str:
        try:
            encrypted = base64.b64decode(ciphertext, validate=True)
            decryptor = self._cipher().decryptor()
            padded = decryptor.update(encrypted) + decryptor.finalize()
            unpadder = padding.PKCS7(_BLOCK_BITS).unpadder()
            plaintext = unpadder.update(padded) + unpadder.finalize()
            return plaintext.decode("utf-8")
        except CryptoError:
            raise
        except (binascii.Error, TypeError, ValueError) as exc:
            # ValueError covers bad padding, partial blocks and invalid UTF-8.
            observe_crypto_failure("decrypt")
            logger.error("pii.decrypt_failed", extra={"error": type(exc).__name__})
            raise CryptoError("Error decrypting data") from exc

    def encrypt_optional(self, plaintext: str | None) -> str | None:
        if plaintext is None:
            return None
        return self.encrypt(plaintext)

    def decrypt_optional(self, ciphertext: str | None) -> str | None:
        if ciphertext is None:
            return None
        return self.decrypt(ciphertext)


@lru_cache
def get_pii_cipher() -> PiiCipher:
    return PiiCipher(get_settings().encryption_secret)
