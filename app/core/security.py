# Fichier: canoncore/backend/app/core/security.py

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union

from jose import ExpiredSignatureError, JWTError, jwt

from app.core.config import settings

logger = logging.getLogger(__name__)


class TokenExpiredError(Exception):
    """Raised when a bearer token carries an ``exp`` claim in the past."""


# --- Fonctions Utilitaires ---
def create_access_token(subject: Union[str, Any], expires_delta: timedelta = None) -> str:
    """Crée un token d'accès JWT.

    Tokens are normally minted by the authentication service; the helper stays
    here so tests and internal tooling can produce compatible tokens.
    """
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode = {"exp": expire, "sub": str(subject)}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[str]:
    """Return the ``sub`` claim of a valid token, ``None`` when it is unusable."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except ExpiredSignatureError as exc:
        raise TokenExpiredError(str(exc)) from exc
    except JWTError as exc:
        logger.warning("Token JWT invalide: %s", exc)
        return None

    subject = payload.get("sub")
    if not subject:
        return None
    return str(subject)
