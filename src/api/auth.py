"""
Identity of the acting user.

Tokens are `<user uuid>.<hex HMAC-SHA256 of the uuid>` keyed with the configured secret.
They are issued by the accounts side of the club; this subsystem only verifies them.
"""

import hashlib
import hmac
from typing import Annotated, Optional
from uuid import UUID

from fastapi import Header, Request

from src.core.exceptions import AuthenticationError

TOKEN_SEPARATOR = "."
BEARER_PREFIX = "Bearer "


def _signature(user_id: UUID, secret: str) -> str:
    return hmac.new(
        secret.encode(), str(user_id).encode(), hashlib.sha256
    ).hexdigest()


def issue_token(user_id: UUID, secret: str) -> str:
    return f"{user_id}{TOKEN_SEPARATOR}{_signature(user_id, secret)}"


def verify_token(token: str, secret: str) -> UUID | None:
    """The user ID carried by a correctly signed token, else None."""
    user_part, _, signature = token.partition(TOKEN_SEPARATOR)
    if not signature:
        return None
    try:
        user_id = UUID(user_part)
    except ValueError:
        return None
    if not hmac.compare_digest(_signature(user_id, secret), signature):
        return None
    return user_id


def get_acting_user(
    request: Request, authorization: Annotated[Optional[str], Header()] = None
) -> UUID:
    """FastAPI dependency: trusted ID of the user making the request."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise AuthenticationError("Access token required.")
    user_id = verify_token(
        authorization.removeprefix(BEARER_PREFIX).strip(),
        request.app.state.settings.auth_secret,
    )
    if user_id is None:
        raise AuthenticationError("Invalid access token.")
    return user_id
