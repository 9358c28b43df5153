"""
Authentication utilities for Appwrite JWT verification.
"""
from dataclasses import dataclass
from typing import Optional
import jwt
from appwrite.client import Client
from appwrite.services.users import Users
from appwrite.exception import AppwriteException

from app.core import config
from app.core.errors import Unauthenticated
from app.utils import get_logger

APPWRITE_ENDPOINT = config.APPWRITE_ENDPOINT
APPWRITE_PROJECT_ID = config.APPWRITE_PROJECT_ID
APPWRITE_API_KEY = config.APPWRITE_API_KEY

log = get_logger(__name__)


@dataclass(frozen=True)
class Principal:
    """Authenticated identity: local user id and email."""
    user_id: str
    email: str


class AppwriteClient:
    """Singleton Appwrite client for server-side operations."""

    _instance: Optional[Client] = None

    @classmethod
    def get_client(cls) -> Client:
        """Get or create Appwrite client instance."""
        if cls._instance is None:
            cls._instance = Client()
            cls._instance.set_endpoint(APPWRITE_ENDPOINT)
            cls._instance.set_project(APPWRITE_PROJECT_ID)
            cls._instance.set_key(APPWRITE_API_KEY)
        return cls._instance


def verify_jwt_token(token: str) -> dict:
    """
    Verify Appwrite JWT token and return payload.

    Args:
        token: JWT token from Authorization header

    Returns:
        Decoded JWT payload containing user information

    Raises:
        Unauthenticated: If token is invalid or expired
    """
    try:
        # Decode JWT without signature verification
        # Appwrite handles token signing - we trust tokens and verify user exists in Appwrite
        return jwt.decode(
            token,
            options={"verify_signature": False, "verify_exp": True}
        )
    except jwt.ExpiredSignatureError:
        raise Unauthenticated("Token has expired")
    except jwt.InvalidTokenError as e:
        raise Unauthenticated(f"Invalid token: {e}")


async def get_appwrite_user(user_id: str) -> dict:
    """
    Get user information from Appwrite.

    Args:
        user_id: Appwrite user ID

    Returns:
        User information from Appwrite

    Raises:
        Unauthenticated: If user not found or API error
    """
    try:
        client = AppwriteClient.get_client()
        users = Users(client)
        return users.get(user_id)
    except AppwriteException as e:
        log.warning("Appwrite lookup failed for %s: %s", user_id, e)
        raise Unauthenticated(f"Failed to verify user: {e}")
