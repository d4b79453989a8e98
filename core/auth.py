"""
MEALY Firebase Authentication Middleware

Verifies Firebase ID tokens for protected endpoints.
"""

import logging
import time
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from firebase_admin import auth
from core.config import settings
from core.database import init_firebase, is_mock_mode
from core.exceptions import InternalError, UnauthorizedError

logger = logging.getLogger("mealy.auth")

# HTTP Bearer scheme for token extraction
security = HTTPBearer(auto_error=False)


class AuthenticatedUser:
    """Represents an authenticated Firebase user."""

    def __init__(
        self,
        uid: str,
        email: Optional[str] = None,
        name: Optional[str] = None,
        email_verified: bool = False
    ):
        self.uid = uid
        self.email = email
        self.name = name
        self.email_verified = email_verified

    def __repr__(self):
        return f"AuthenticatedUser(uid={self.uid}, email={self.email})"


async def verify_firebase_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> AuthenticatedUser:
    """
    Verify Firebase ID token from Authorization header.

    In mock mode the bearer token itself is taken as the user id, so a
    household can be simulated locally with tokens like "alice" and "bob".
    Mock mode never authenticates anyone when ENVIRONMENT=production.

    Usage:
        @router.get("/protected")
        async def protected_route(user: AuthenticatedUser = Depends(verify_firebase_token)):
            return {"message": f"Hello {user.email}"}
    """
    start_time = time.time()
    # Initialize Firebase if not already done
    init_firebase()

    # Check for credentials
    if credentials is None or not credentials.credentials:
        logger.warning("❌ No authorization header provided")
        raise UnauthorizedError("Unauthorized")

    token = credentials.credentials

    # Mock mode - token is the uid
    if is_mock_mode():
        if settings.is_production:
            logger.error("❌ Refusing mock-mode token in production, Firebase is not connected")
            raise UnauthorizedError("Unauthorized")

        elapsed = (time.time() - start_time) * 1000
        logger.debug(f"🧪 MOCK MODE: Accepting token as uid={token} in {elapsed:.1f}ms")
        return AuthenticatedUser(uid=token, email_verified=True)

    token_preview = token[:20] + "..." if len(token) > 20 else token
    logger.debug(f"🔑 Token received: {token_preview}")

    try:
        verify_start = time.time()
        decoded_token = auth.verify_id_token(token)
        verify_time = (time.time() - verify_start) * 1000
        logger.debug(f"✅ Token verified in {verify_time:.1f}ms")

        user = AuthenticatedUser(
            uid=decoded_token.get("uid"),
            email=decoded_token.get("email"),
            name=decoded_token.get("name"),
            email_verified=decoded_token.get("email_verified", False)
        )
        return user

    except auth.ExpiredIdTokenError:
        logger.warning("Token expired")
        raise UnauthorizedError("Token has expired")

    except auth.RevokedIdTokenError:
        logger.warning("Token revoked")
        raise UnauthorizedError("Token has been revoked")

    except auth.InvalidIdTokenError as e:
        logger.warning(f"Invalid token: {e}")
        raise UnauthorizedError("Invalid authentication token")

    except Exception as e:
        logger.error(f"Auth error: {e}")
        raise InternalError("Authentication service error")
