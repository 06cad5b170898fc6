from __future__ import annotations

from functools import lru_cache
from typing import Any

import structlog
from cryptography.fernet import Fernet, InvalidToken

from app.config import get_settings

# plain column -> encrypted column
ENCRYPTED_FIELDS = {
    "budget": "encrypted_budget",
    "sensitive_notes": "encrypted_notes",
}

logger = structlog.get_logger(__name__)


class FieldDecryptionError(Exception):
    pass


@lru_cache(maxsize=4)
def _fernet(key: str) -> Fernet:
    return Fernet(key.encode("utf-8"))


def get_cipher() -> Fernet | None:
    key = get_settings().field_encryption_key
    return _fernet(key) if key else None


def encrypt_field(value: Any) -> str:
    cipher = get_cipher()
    if cipher is None:
        raise RuntimeError("FIELD_ENCRYPTION_KEY is not configured")
    return cipher.encrypt(str(value).encode("utf-8")).decode("utf-8")


def decrypt_field(token: str) -> str:
    cipher = get_cipher()
    if cipher is None:
        raise FieldDecryptionError("FIELD_ENCRYPTION_KEY is not configured")
    try:
        return cipher.decrypt(token.encode("utf-8")).decode("utf-8")
    except InvalidToken as exc:
        raise FieldDecryptionError("Encrypted field could not be decrypted") from exc


def encrypt_sensitive_fields(row: dict[str, Any]) -> dict[str, Any]:
    """Move sensitive plain columns into their encrypted counterparts.

    Without a configured key the row is returned unchanged.
    """
    if get_cipher() is None:
        if any(row.get(name) for name in ENCRYPTED_FIELDS):
            logger.warning("encryption.disabled", fields=[name for name in ENCRYPTED_FIELDS if row.get(name)])
        return row

    result = dict(row)
    for plain, encrypted in ENCRYPTED_FIELDS.items():
        value = result.pop(plain, None)
        if value:
            result[encrypted] = encrypt_field(value)
        elif value is not None:
            result[plain] = value
    return result


def decrypt_budget(row: dict[str, Any]) -> dict[str, Any]:
    encrypted = row.get("encrypted_budget")
    if not encrypted:
        return row
    try:
        budget = decrypt_field(encrypted)
    except FieldDecryptionError:
        logger.exception("encryption.decrypt_failed", project_id=row.get("id"))
        return row
    result = {key: value for key, value in row.items() if key != "encrypted_budget"}
    result["budget"] = budget
    return result
