"""Encryption of owner channel credentials."""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

from cryptography.fernet import Fernet

from app.config import get_settings


def _get_fernet() -> Optional[Fernet]:
    """Get a Fernet instance with the credential master key, if one is configured."""
    settings = get_settings()
    key = settings.credential_master_key or settings.fernet_key
    if not key:
        return None
    return Fernet(key.encode() if isinstance(key, str) else key)


def credentials_enabled() -> bool:
    return _get_fernet() is not None


def encrypt_credential_fields(fields: Dict[str, Any]) -> bytes:
    """Encrypt credential fields."""
    fernet = _get_fernet()
    if fernet is None:
        raise ValueError(
            "CREDENTIAL_MASTER_KEY or FERNET_KEY must be set for credential encryption"
        )
    plaintext = json.dumps(fields).encode()
    return fernet.encrypt(plaintext)


def decrypt_credential_fields(encrypted_data: bytes) -> Dict[str, Any]:
    """Decrypt credential fields."""
    fernet = _get_fernet()
    if fernet is None:
        raise ValueError(
            "CREDENTIAL_MASTER_KEY or FERNET_KEY must be set for credential decryption"
        )
    plaintext = fernet.decrypt(encrypted_data)
    return json.loads(plaintext)


def channel_credentials(channel: str) -> Dict[str, Any]:
    """Collect the configured secrets for a channel, skipping unset values."""
    settings = get_settings()
    if channel == "line":
        fields = {
            "channel_secret": settings.line_channel_secret,
            "channel_access_token": settings.line_channel_access_token,
        }
    elif channel == "telegram":
        fields = {"bot_token": settings.telegram_bot_token}
    else:
        fields = {}
    return {k: v for k, v in fields.items() if v}
