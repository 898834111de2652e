from datetime import datetime, timezone

from sqlalchemy.orm import Session

from .models import Expense, User


def to_utc(value: datetime) -> datetime:
    # naive values are server local time
    return value.astimezone(timezone.utc)


def stored_utc(value: datetime) -> datetime:
    # SQLite drops the offset of what to_utc wrote
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def get_user_by_id(db: Session, user_id: int):
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_email(db: Session, email: str):
    return db.query(User).filter(User.email == email).first()


def create_user(db: Session, email: str, hashed_password: str):
    user = User(email=email, password=hashed_password)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def add_expense(db: Session, title: str, amount: float, user_id: int, created_at: datetime):
    expense = Expense(
        title=title,
        amount=amount,
        user_id=user_id,
        created_at=to_utc(created_at),
    )
    db.add(expense)
    db.commit()
    db.refresh(expense)
    return expense


def get_expenses_between(db: Session, user_id: int, start: datetime, end: datetime):
    # inclusive on both ends, in insertion order
    return db.query(Expense).filter(
        Expense.user_id == user_id,
        Expense.created_at >= to_utc(start),
        Expense.created_at <= to_utc(end)
    ).order_by(Expense.id).all()
