"""Fernet encryption of stored document bodies.

Session time series and analysis results are encrypted before they reach
SQLite. Only the collection name, document key and timestamps stay in the
clear so documents can be addressed without decrypting them.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)


class EncryptionError(Exception):
    """Raised when a document body cannot be encrypted or decrypted."""


class DocumentEncryptor:
    """Encrypts JSON documents to Fernet tokens and back.

    Usage::

        encryptor = DocumentEncryptor(key=DocumentEncryptor.generate_key())
        token = encryptor.encrypt({"session_id": "s-1", "duration": 300})
        encryptor.decrypt(token)  # {"session_id": "s-1", "duration": 300}
    """

    def __init__(self, key: str) -> None:
        """
        Args:
            key: A Fernet key string, as produced by :meth:`generate_key`.

        Raises:
            EncryptionError: If the key is empty or malformed.
        """
        if not key or not key.strip():
            raise EncryptionError("Encryption key must not be empty")
        try:
            self._fernet = Fernet(key.encode("utf-8"))
        except ValueError as exc:
            raise EncryptionError(f"Invalid encryption key: {exc}") from exc

    def encrypt(self, document: dict[str, Any]) -> str:
        """Serialize a document to compact JSON and encrypt it.

        Raises:
            EncryptionError: If the document is not strict JSON (NaN and
                infinities are rejected).
        """
        try:
            plaintext = json.dumps(document, separators=(",", ":"), allow_nan=False)
        except (TypeError, ValueError) as exc:
            raise EncryptionError(f"Document is not JSON-serializable: {exc}") from exc
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("utf-8")

    def decrypt(self, token: str) -> dict[str, Any]:
        """Decrypt a token produced by :meth:`encrypt`.

        Raises:
            EncryptionError: Wrong key, tampered token, or a body that is not
                a JSON object.
        """
        if not token:
            raise EncryptionError("Cannot decrypt an empty token")
        try:
            plaintext = self._fernet.decrypt(token.encode("utf-8"))
        except InvalidToken as exc:
            raise EncryptionError("Decryption failed: invalid token or wrong key") from exc
        document = json.loads(plaintext)
        if not isinstance(document, dict):
            raise EncryptionError(
                f"Decrypted body is a {type(document).__name__}, expected an object"
            )
        return document

    @staticmethod
    def generate_key() -> str:
        """Return a new URL-safe base64 Fernet key."""
        return Fernet.generate_key().decode("utf-8")
