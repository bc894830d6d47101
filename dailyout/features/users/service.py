"""
User domain service.
- get_or_create_user(user_id): anonymous identities, created on first contact
- register(email, password, existing_user_id): create an account or link one to an anonymous identity
- login(email, password)
"""

from __future__ import annotations

import logging
import re
import uuid
from typing import List, Optional, Tuple

import bcrypt
from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError

from dailyout.core.auth import create_access_token
from dailyout.core.clock import Clock, as_utc
from dailyout.core.database import Database, users
from dailyout.core.errors import (
    AlreadyRegisteredError,
    ConflictError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from dailyout.models.user import User

logger = logging.getLogger("dailyout.users")

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 8
# bcrypt only looks at the first 72 bytes and rejects longer input
MAX_PASSWORD_BYTES = 72


def hash_password(password: str, rounds: int = 10) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        has_password=bool(row.password_hash),
        created_at=as_utc(row.created_at),
    )


class UserService:
    def __init__(
        self,
        db: Database,
        *,
        clock: Clock,
        jwt_secret: str,
        jwt_expires_days: int = 7,
        bcrypt_rounds: int = 10,
    ):
        self.db = db
        self.clock = clock
        self.jwt_secret = jwt_secret
        self.jwt_expires_days = jwt_expires_days
        self.bcrypt_rounds = bcrypt_rounds

    def get_user(self, user_id: str) -> Optional[User]:
        with self.db.session() as session:
            row = session.execute(select(users).where(users.c.id == user_id)).first()
        return _row_to_user(row) if row else None

    def get_or_create_user(self, user_id: str) -> User:
        existing = self.get_user(user_id)
        if existing:
            return existing

        now = self.clock.now()
        try:
            with self.db.session() as session:
                session.execute(insert(users).values(id=user_id, created_at=now, updated_at=now))
        except IntegrityError:
            # Concurrent first contact for the same identity
            existing = self.get_user(user_id)
            if existing is None:
                raise
            return existing

        logger.info("user.created", extra={"user_id": user_id})
        return User(id=user_id, created_at=now)

    def list_user_ids(self) -> List[str]:
        with self.db.session() as session:
            rows = session.execute(select(users.c.id).order_by(users.c.created_at, users.c.id)).all()
        return [row.id for row in rows]

    def issue_token(self, user: User) -> str:
        return create_access_token(
            user.id,
            user.email,
            secret=self.jwt_secret,
            expires_days=self.jwt_expires_days,
            now=self.clock.now(),
        )

    def register(self, email: str, password: str, existing_user_id: Optional[str] = None) -> Tuple[User, str]:
        """
        Create an account, or attach email/password to an existing anonymous
        identity (keeping its id and therefore all of its history).
        """
        email = (email or "").strip()
        if not EMAIL_RE.match(email):
            raise ValidationError("Invalid email format")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes long")

        with self.db.session() as session:
            owner = session.execute(select(users.c.id).where(users.c.email == email)).first()
        if owner and owner.id != existing_user_id:
            raise ConflictError("Email already registered")

        password_hash = hash_password(password, self.bcrypt_rounds)
        now = self.clock.now()

        if existing_user_id:
            current = self.get_user(existing_user_id)
            if current is None:
                raise NotFoundError("User not found")
            if current.email:
                raise AlreadyRegisteredError("User already has an email registered")
            try:
                with self.db.session() as session:
                    result = session.execute(
                        update(users)
                        .where(users.c.id == existing_user_id, users.c.email.is_(None))
                        .values(email=email, password_hash=password_hash, updated_at=now)
                    )
                    linked = result.rowcount == 1
            except IntegrityError:
                raise ConflictError("Email already registered")
            if not linked:
                raise AlreadyRegisteredError("User already has an email registered")
            user_id = existing_user_id
        else:
            user_id = str(uuid.uuid4())
            try:
                with self.db.session() as session:
                    session.execute(
                        insert(users).values(
                            id=user_id,
                            email=email,
                            password_hash=password_hash,
                            created_at=now,
                            updated_at=now,
                        )
                    )
            except IntegrityError:
                raise ConflictError("Email already registered")

        user = self.get_user(user_id)
        logger.info("user.registered", extra={"user_id": user_id, "linked": bool(existing_user_id)})
        return user, self.issue_token(user)

    def login(self, email: str, password: str) -> Tuple[User, str]:
        email = (email or "").strip()
        with self.db.session() as session:
            row = session.execute(select(users).where(users.c.email == email)).first()
        if not row or not row.password_hash or not verify_password(password or "", row.password_hash):
            raise UnauthorizedError("Invalid email or password")
        user = _row_to_user(row)
        return user, self.issue_token(user)
