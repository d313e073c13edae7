"""
User context for multi-tenant requests.

The UserContext dataclass describes the authenticated principal a request runs
as; the encryption helpers protect data source credentials at rest.
"""

import base64
import hashlib
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from cryptography.fernet import Fernet, InvalidToken

from ..config import CONFIG

logger = logging.getLogger(__name__)


@dataclass
class UserContext:
    """
    Identity and tenant of the caller.

    Injected into the route handlers so services can scope reads to the
    caller's company and check ownership on writes.
    """
    user_id: str
    company_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "company_id": self.company_id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserContext":
        return cls(
            user_id=str(data["user_id"]),
            company_id=str(data.get("company_id") or ""),
            email=data.get("email"),
            name=data.get("name"),
            role=str(data.get("role") or "user"),
        )


# Encryption utilities for data source secrets
_generated_key: Optional[bytes] = None


def get_encryption_key() -> bytes:
    """
    Resolve the Fernet key for secrets at rest.

    DATA_SOURCE_SECRET_KEY wins; otherwise a key is derived from JWT_SECRET.
    Without either, a process-local key is generated and stored values will
    not survive a restart.
    """
    global _generated_key
    if CONFIG.data_source_secret_key:
        return CONFIG.data_source_secret_key.encode()
    if CONFIG.jwt_secret:
        digest = hashlib.sha256(CONFIG.jwt_secret.encode()).digest()
        return base64.urlsafe_b64encode(digest)
    if _generated_key is None:
        _generated_key = Fernet.generate_key()
        logger.warning("No DATA_SOURCE_SECRET_KEY or JWT_SECRET configured; using a temporary encryption key")
    return _generated_key


def encrypt_secret(value: str) -> str:
    """Encrypt a sensitive value for storage."""
    if not value:
        return ""

    fernet = Fernet(get_encryption_key())
    return fernet.encrypt(value.encode()).decode()


def decrypt_secret(encrypted_value: str) -> str:
    """Decrypt a stored value."""
    if not encrypted_value:
        return ""

    fernet = Fernet(get_encryption_key())
    try:
        return fernet.decrypt(encrypted_value.encode()).decode()
    except InvalidToken:
        logger.warning("Failed to decrypt stored secret")
        return ""
