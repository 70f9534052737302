import logging
from typing import Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from sqlalchemy.orm import Session

from config import get_settings
from models import User

logger = logging.getLogger(__name__)


class AuthorizationError(Exception):
    pass


def _serializer() -> URLSafeTimedSerializer:
    settings = get_settings()
    return URLSafeTimedSerializer(settings.session_secret, salt="session")


def issue_session_token(user_id: int) -> str:
    return _serializer().dumps({"u": user_id})


def get_authenticated_user(session: Session, token: Optional[str]) -> User:
    if not token:
        raise AuthorizationError("Unauthorized: No session found")

    max_age = get_settings().session_max_age_hours * 3600
    try:
        data = _serializer().loads(token, max_age=max_age)
    except SignatureExpired as exc:
        raise AuthorizationError("Unauthorized: Session expired") from exc
    except BadSignature as exc:
        raise AuthorizationError("Unauthorized: Invalid session") from exc

    user_id = data.get("u") if isinstance(data, dict) else None
    user = session.get(User, user_id) if isinstance(user_id, int) else None
    if user is None:
        logger.info(f"auth_rejected: reason=user_not_found user_id={user_id}")
        raise AuthorizationError("Unauthorized: User not found")
    return user
