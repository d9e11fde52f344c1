"""Authentication dependency for protected routes"""
import logging
from fastapi import HTTPException, Cookie, Depends, Request
from typing import Optional, Dict, Any
import jwt

from app.config import settings
from app.models.session import Session

logger = logging.getLogger(__name__)


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail={
            "error": "Unauthorized",
            "message": message,
            "details": {}
        },
        headers={"WWW-Authenticate": "Bearer"}
    )


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Verify a Supabase-issued access token

    Args:
        token: Encoded JWT

    Returns:
        Token payload, or None if the token is invalid or expired
    """
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience
        )
    except jwt.PyJWTError as e:
        logger.info(f"Rejected access token: {type(e).__name__}")
        return None


async def get_session(request: Request, access_token: Optional[str] = Cookie(None)) -> Session:
    """
    Dependency that turns the caller's token into a Session

    The Authorization header wins over the access_token cookie.

    Raises:
        HTTPException: If the token is missing or invalid
    """
    auth_header = request.headers.get("authorization")
    if auth_header and auth_header.startswith("Bearer "):
        access_token = auth_header.split(" ", 1)[1]

    if not access_token:
        raise _unauthorized("Missing authentication token")

    payload = decode_access_token(access_token)
    if not payload:
        raise _unauthorized("Invalid or expired authentication token")

    user_id = payload.get("sub")
    if not user_id:
        raise _unauthorized("Invalid token payload")

    return Session(user_id=user_id, email=payload.get("email"), access_token=access_token)


def require_auth(session: Session = Depends(get_session)) -> Session:
    """
    Dependency shorthand for requiring authentication

    Args:
        session: Session from get_session dependency

    Returns:
        Current session
    """
    return session
