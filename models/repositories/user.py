from __future__ import annotations

from typing import Optional, Protocol

from sqlalchemy.exc import IntegrityError

from models.user import User
from utils.exceptions import UsernameTaken


class UserRepository(Protocol):
    def create(self, username: str, password_hash: str) -> User:
        """Persist a new user; raises UsernameTaken on a duplicate username."""
        ...

    def find_by_username(self, username: str) -> Optional[User]:
        ...

    def find_by_id(self, user_id: int) -> Optional[User]:
        ...


class SQLUserRepository:
    def __init__(self, storage):
        self._storage = storage

    def create(self, username: str, password_hash: str) -> User:
        user = User(username=username, password_hash=password_hash)
        self._storage.new(user)
        try:
            self._storage.save()
        except IntegrityError as exc:
            # the unique index on users.username is the source of truth
            raise UsernameTaken() from exc
        return user

    def find_by_username(self, username: str) -> Optional[User]:
        session = self._storage.get_session()
        return session.query(User).filter(User.username == username).first()

    def find_by_id(self, user_id: int) -> Optional[User]:
        return self._storage.get(User, user_id)
