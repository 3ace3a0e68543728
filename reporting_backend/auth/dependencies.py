import logging

from fastapi import Depends, Header
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from reporting_backend.auth.sessions import CallerContext, SessionRegistry, get_session_registry
from reporting_backend.core.errors import InternalError, InvalidSession, Unauthenticated
from reporting_backend.database import get_db
from reporting_backend.models.user import User

logger = logging.getLogger(__name__)


def extract_token(authorization: str | None, session_id: str | None) -> str | None:
    candidates = (value.strip() for value in (authorization, session_id) if value)
    token = next((value for value in candidates if value), None)
    if token is None:
        return None
    if token.lower().startswith('bearer '):
        token = token[len('bearer '):].strip()
    return token or None


def resolve_caller(token: str | None, registry: SessionRegistry, db: Session) -> CallerContext:
    if not token:
        raise Unauthenticated()

    snapshot = registry.lookup(token)
    if snapshot is None:
        raise InvalidSession()

    try:
        user = db.get(User, snapshot.id)
    except SQLAlchemyError as exc:
        logger.exception('Session validation failed for user %s', snapshot.id)
        raise InternalError() from exc

    if user is None:
        registry.invalidate(token)
        raise InvalidSession('User no longer exists')
    return snapshot


def get_session_token(
    authorization: str | None = Header(default=None),
    session_id: str | None = Header(default=None),
) -> str | None:
    return extract_token(authorization, session_id)


def get_caller(
    token: str | None = Depends(get_session_token),
    registry: SessionRegistry = Depends(get_session_registry),
    db: Session = Depends(get_db),
) -> CallerContext:
    return resolve_caller(token, registry, db)
