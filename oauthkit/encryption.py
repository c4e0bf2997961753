"""Authenticated AES-256-GCM encryption of text into a portable string form."""

from __future__ import annotations

import base64
import binascii
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

NONCE_SIZE = 12
KEY_SIZE = 32


class CryptoError(Exception):
    """Base class for encryption and decryption failures."""


class InvalidKeyLengthError(CryptoError):
    """The key does not have the required length."""

    def __init__(self, length: int) -> None:
        self.length = length
        super().__init__(f"Invalid key length: {length} (expected {KEY_SIZE})")


class EncryptionError(CryptoError):
    """Encrypting the plaintext failed."""

    def __init__(self) -> None:
        super().__init__("Encryption failed")


class DecryptionError(CryptoError):
    """The ciphertext could not be authenticated or decrypted."""

    def __init__(self) -> None:
        super().__init__("Decryption failed")


class InvalidFormatError(CryptoError):
    """The encoded value is not of the form ``nonce:ciphertext``."""

    def __init__(self) -> None:
        super().__init__("Invalid format")


class Utf8DecodeError(CryptoError):
    """The decrypted bytes are not valid UTF-8."""

    def __init__(self) -> None:
        super().__init__("UTF-8 conversion error")


def _b64decode(text: str) -> bytes:
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidFormatError() from exc


class Encryptor:
    """Encrypts and decrypts text with a 32-byte AES-256-GCM key.

    Encrypted values are ``base64(nonce):base64(ciphertext)`` with a fresh
    random 12-byte nonce for every encryption.
    """

    def __init__(self, key: bytes) -> None:
        key = bytes(key)
        if len(key) != KEY_SIZE:
            raise InvalidKeyLengthError(len(key))
        self._cipher = AESGCM(key)

    def encrypt(self, plaintext: str) -> str:
        """Encrypt ``plaintext`` and return the encoded result."""
        nonce = os.urandom(NONCE_SIZE)
        try:
            ciphertext = self._cipher.encrypt(nonce, plaintext.encode("utf-8"), None)
        except (ValueError, OverflowError, UnicodeEncodeError) as exc:
            raise EncryptionError() from exc
        return "{}:{}".format(
            base64.b64encode(nonce).decode("ascii"),
            base64.b64encode(ciphertext).decode("ascii"),
        )

    def decrypt(self, encoded: str) -> str:
        """Decrypt a value produced by :meth:`encrypt`."""
        nonce_text, sep, cipher_text = encoded.partition(":")
        if not sep:
            raise InvalidFormatError()
        nonce = _b64decode(nonce_text)
        if len(nonce) != NONCE_SIZE:
            raise InvalidFormatError()
        ciphertext = _b64decode(cipher_text)
        try:
            plaintext = self._cipher.decrypt(nonce, ciphertext, None)
        except (InvalidTag, ValueError) as exc:
            raise DecryptionError() from exc
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise Utf8DecodeError() from exc