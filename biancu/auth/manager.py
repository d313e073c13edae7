"""
Authentication module for the platform's own bearer tokens.

This module provides:
- JWT issuance and validation (HS256 with issuer and audience)
- The development bypass token
- Request header helpers used by the API dependencies
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from fastapi import HTTPException, status

from ..config import CONFIG


logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
DEV_USER_CLAIMS: Dict[str, Any] = {
    "sub": "dev-user",
    "email": "dev@example.com",
    "name": "Developer User",
    "company_id": "dev-company",
    "role": "admin",
    "dev": True,
}


class TokenManager:
    """Issues and verifies the JWTs handed to the front end after Google login."""

    def __init__(self, secret: Optional[str] = None):
        self.secret = secret or CONFIG.jwt_secret
        if not self.secret:
            raise ValueError("JWT_SECRET environment variable is required")
        self.issuer = CONFIG.jwt_issuer
        self.audience = CONFIG.jwt_audience
        self.expires_hours = CONFIG.jwt_expires_hours

    def issue_token(
        self,
        *,
        user_id: str,
        email: str,
        company_id: str,
        role: str,
        name: Optional[str] = None,
    ) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": user_id,
            "email": email,
            "company_id": company_id,
            "role": role,
            "iss": self.issuer,
            "aud": self.audience,
            "iat": now,
            "exp": now + timedelta(hours=self.expires_hours),
        }
        if name:
            payload["name"] = name
        return jwt.encode(payload, self.secret, algorithm=ALGORITHM)

    def verify_jwt_token(self, token: str) -> Optional[Dict[str, Any]]:
        """
        Verify and decode a platform JWT.

        Args:
            token: The JWT token to verify

        Returns:
            Decoded token payload if valid, None if invalid
        """
        if not token:
            logger.debug("verify_jwt_token received empty token")
            return None

        if CONFIG.is_development and CONFIG.dev_auth_token and token == CONFIG.dev_auth_token:
            logger.debug("Accepted development bypass token")
            return dict(DEV_USER_CLAIMS)

        try:
            return jwt.decode(
                token,
                self.secret,
                algorithms=[ALGORITHM],
                audience=self.audience,
                issuer=self.issuer,
            )
        except jwt.ExpiredSignatureError:
            logger.info("Rejected expired token")
            return None
        except jwt.InvalidTokenError as exc:
            logger.debug("JWT decode failed: %s", exc)
            return None

    def get_user_from_token(self, token: str) -> Optional[Dict[str, Any]]:
        """
        Extract user information from a valid JWT token.

        Returns:
            User information dict or None if invalid
        """
        payload = self.verify_jwt_token(token)
        if not payload or not payload.get("sub"):
            return None

        return {
            "id": payload.get("sub"),
            "email": payload.get("email"),
            "name": payload.get("name"),
            "company_id": payload.get("company_id"),
            "role": payload.get("role") or "user",
            "dev": bool(payload.get("dev")),
        }

    def authenticate_request_token(self, authorization_header: Optional[str]) -> Optional[Dict[str, Any]]:
        """Extract and validate the bearer token from an Authorization header."""
        if not authorization_header or not authorization_header.startswith("Bearer "):
            return None

        token = authorization_header[7:].strip()
        return self.get_user_from_token(token)


AuthManager = TokenManager


# Global auth manager instance
_auth_manager: Optional[AuthManager] = None


def get_auth_manager() -> AuthManager:
    """Get the global AuthManager instance."""
    global _auth_manager
    if _auth_manager is None:
        _auth_manager = AuthManager()
    return _auth_manager


def reset_auth_manager() -> None:
    global _auth_manager
    _auth_manager = None


def require_auth(authorization: Optional[str] = None) -> Dict[str, Any]:
    """
    Validate an Authorization header value.

    Returns:
        The token claims as a user info dict

    Raises:
        HTTPException: If authentication fails
    """
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_info = get_auth_manager().authenticate_request_token(authorization)

    if not user_info:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user_info
