import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from auth import AuthorizationError, get_authenticated_user, issue_session_token
from database import Base
from models import User


def _session() -> Session:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    return Session(engine)


def test_valid_token_returns_user() -> None:
    with _session() as session:
        user = User(email="ana@example.com")
        session.add(user)
        session.commit()

        found = get_authenticated_user(session, issue_session_token(user.id))
        assert found.id == user.id
        assert found.is_telegram_linked is False


@pytest.mark.parametrize("token", [None, "", "not-a-token"])
def test_missing_or_tampered_token_is_rejected(token) -> None:
    with _session() as session:
        with pytest.raises(AuthorizationError):
            get_authenticated_user(session, token)


def test_token_for_deleted_user_is_rejected() -> None:
    with _session() as session:
        with pytest.raises(AuthorizationError, match="User not found"):
            get_authenticated_user(session, issue_session_token(41))
