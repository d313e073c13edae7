"""
Authentication and User Context Management

This module provides:
- JWT issuance and validation for the platform's bearer tokens
- Google sign-in helpers
- User context for multi-tenant requests
- Encryption of secrets at rest
"""

from .manager import AuthManager, TokenManager, get_auth_manager, require_auth, reset_auth_manager
from .user_context import UserContext, decrypt_secret, encrypt_secret

__all__ = [
    'AuthManager',
    'TokenManager',
    'get_auth_manager',
    'require_auth',
    'reset_auth_manager',
    'UserContext',
    'encrypt_secret',
    'decrypt_secret',
]
