# app/backend.py

"""Client for the data backend.

Every read, write and auth call the pages make goes through
:class:`ExpenseBackend`. Each call opens its own SQLAlchemy session, so two
calls may run at the same time from different threads.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Iterable, List, Optional

from passlib.hash import bcrypt
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from . import crud
from .database import SessionLocal
from .models import User

logger = logging.getLogger(__name__)

EXPENSE_FIELDS = ("title", "amount", "created_at")


class BackendError(Exception):
    """A read or write against the backend failed."""


class AuthError(BackendError):
    """Credentials were rejected or the account cannot be created."""


class ExpenseBackend:
    def __init__(self, session_factory=SessionLocal):
        self._session_factory = session_factory

    @contextmanager
    def _session(self, action: str):
        db = self._session_factory()
        try:
            yield db
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("Backend %s failed", action, exc_info=True)
            raise BackendError(f"{action} failed") from exc
        finally:
            db.close()

    # -- auth --

    def get_user(self, session) -> Optional[User]:
        """Return the signed-in user for this session, or None."""
        user_id = session.get("user_id")
        if not user_id:
            return None
        with self._session("user lookup") as db:
            return crud.get_user_by_id(db, user_id)

    def sign_in(self, session, email: str, password: str) -> User:
        with self._session("sign in") as db:
            user = crud.get_user_by_email(db, email)
        if not user or not bcrypt.verify(password, user.password):
            raise AuthError("Invalid email or password.")
        session["user_id"] = user.id
        logger.info("User %s signed in", user.id)
        return user

    def sign_up(self, email: str, password: str) -> User:
        hashed_password = bcrypt.hash(password)
        try:
            with self._session("sign up") as db:
                if crud.get_user_by_email(db, email):
                    raise AuthError("Email already registered.")
                user = crud.create_user(db, email, hashed_password)
        except BackendError as exc:
            if isinstance(exc.__cause__, IntegrityError):
                raise AuthError("Email already registered.") from exc
            raise
        logger.info("User %s registered", user.id)
        return user

    def sign_out(self, session):
        user_id = session.get("user_id")
        session.clear()
        logger.info("User %s signed out", user_id)

    # -- expenses --

    def select_expenses(
        self,
        user_id: int,
        start: datetime,
        end: datetime,
        fields: Iterable[str] = EXPENSE_FIELDS,
    ) -> List[dict]:
        """Rows created in [start, end] for one user, as plain dicts.

        ``created_at`` is returned as ISO-8601 text in UTC.
        """
        fields = tuple(fields)
        unknown = set(fields) - set(EXPENSE_FIELDS)
        if unknown:
            raise BackendError(f"Unknown fields: {', '.join(sorted(unknown))}")

        with self._session("select expenses") as db:
            rows = crud.get_expenses_between(db, user_id, start, end)

        result = []
        for row in rows:
            record = {}
            for field in fields:
                value = getattr(row, field)
                if field == "created_at":
                    value = crud.stored_utc(value).isoformat()
                record[field] = value
            result.append(record)
        return result

    def insert_expense(self, title: str, amount: float, user_id: int, created_at: datetime):
        with self._session("insert expense") as db:
            expense = crud.add_expense(db, title, amount, user_id, created_at)
        logger.info("Inserted expense %s for user %s", expense.id, user_id)
        return expense
