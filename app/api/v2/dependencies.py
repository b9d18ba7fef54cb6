import logging
from typing import Generator, Optional
from urllib.parse import unquote

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.db import session as db_session
from app.core import security
from app.models.user.user_model import User

log = logging.getLogger(__name__)

BEARER_PREFIX = "bearer "


def get_db() -> Generator[Session, None, None]:
    """Provide one SQLAlchemy session per request."""
    db = db_session.SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _extract_token(raw_value: Optional[str]) -> Optional[str]:
    """JWT carried by an ``Authorization`` header or the ``access_token`` cookie.

    Cookies may arrive percent-encoded (``Bearer%20...``).
    """
    if not raw_value:
        return None

    token = unquote(raw_value).strip()
    if token.lower().startswith(BEARER_PREFIX):
        token = token[len(BEARER_PREFIX):].strip()
    return token or None


def _user_from_token(token: Optional[str], db: Session) -> User:
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
    )
    if token is None:
        log.warning("Authentification refusée: aucun token.")
        raise unauthorized

    try:
        user_id = security.decode_access_token(token)
    except security.TokenExpiredError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="token_expired")

    user = db.get(User, user_id) if user_id else None
    if user is None:
        log.warning("Authentification refusée: token sans utilisateur connu.")
        raise unauthorized
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="inactive_user")
    return user


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """Resolve the caller from the bearer header, then from the session cookie."""
    header_token = _extract_token(request.headers.get("Authorization"))
    cookie_token = _extract_token(request.cookies.get("access_token"))

    if header_token and cookie_token:
        try:
            return _user_from_token(header_token, db)
        except HTTPException as exc:
            if exc.status_code != status.HTTP_401_UNAUTHORIZED:
                raise
        return _user_from_token(cookie_token, db)

    return _user_from_token(header_token or cookie_token, db)
