from __future__ import annotations

import logging
from typing import List, Optional

from ...utils.auth import hash_password, needs_rehash, verify_password
from ...utils.validators import non_empty
from ..errors import NotFoundError, ValidationError
from ..models import USER_ROLES, ClinicData, User
from .counters import IdAllocator
from .sync_queue_repo import SyncQueueRepo

_log = logging.getLogger(__name__)


class UsersRepo:
    """
    Clinic users (admin / staff).

    Passwords are stored as bcrypt hashes and never leave this repo:
    list/get return copies with the password cleared, and sync payloads are
    masked by the queue. Usernames are unique case-insensitively.

    authenticate() also upgrades plain-text or weak hashes carried over from
    older exports; the caller persists the document afterwards.
    """

    def __init__(self, data: ClinicData, ids: IdAllocator, sync: SyncQueueRepo) -> None:
        self.data = data
        self.ids = ids
        self.sync = sync

    # ------------------------------ helpers ------------------------------

    @staticmethod
    def _norm_username(username: str) -> str:
        return (username or "").strip()

    def _find(self, user_id: str) -> Optional[User]:
        return next((u for u in self.data.users if u.id == user_id), None)

    def _find_by_username(self, username: str) -> Optional[User]:
        uname = self._norm_username(username).lower()
        return next((u for u in self.data.users if u.username.lower() == uname), None)

    @staticmethod
    def _public(user: User) -> User:
        return User(id=user.id, username=user.username, password=None, role=user.role)

    # ------------------------------- reads -------------------------------

    def list_users(self) -> List[User]:
        return [self._public(u) for u in self.data.users]

    def get_user_by_username(self, username: str) -> Optional[User]:
        u = self._find_by_username(username)
        return self._public(u) if u else None

    def authenticate(self, username: str, password: str) -> Optional[User]:
        """The user (without password) on success, else None."""
        u = self._find_by_username(username)
        if u is None or not verify_password(password, u.password):
            _log.info("Failed login for %r", self._norm_username(username))
            return None
        if needs_rehash(u.password):
            u.password = hash_password(password)
            _log.info("Upgraded password hash for %s", u.id)
        return self._public(u)

    # ------------------------------ writes -------------------------------

    def save(
        self,
        *,
        username: str,
        role: str = "staff",
        password: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> str:
        """
        Create (no id) or update (with id). A new user needs a password; on
        edit an empty password keeps the stored hash.
        """
        uname = self._norm_username(username)
        if not non_empty(uname):
            raise ValidationError("Username cannot be empty.")
        if role not in USER_ROLES:
            raise ValidationError(f"Unknown role: {role}")

        clash = self._find_by_username(uname)
        if clash is not None and clash.id != user_id:
            raise ValidationError("Username is already taken.")

        if user_id:
            u = self._find(user_id)
            if u is None:
                raise NotFoundError(f"User {user_id} not found.")
            u.username = uname
            u.role = role
            if password:
                u.password = hash_password(password)
            self.sync.log("users", "update", u)
            return u.id

        if not password:
            raise ValidationError("Password is required for new users.")
        u = User(
            id=self.ids.next_id("user"),
            username=uname,
            password=hash_password(password),
            role=role,
        )
        self.data.users.append(u)
        self.sync.log("users", "create", u)
        _log.info("Created user %s (%s)", u.id, role)
        return u.id

    def delete(self, user_id: str) -> None:
        if self._find(user_id) is None:
            raise NotFoundError(f"User {user_id} not found.")
        self.sync.log("users", "delete", user_id)
        self.data.users = [u for u in self.data.users if u.id != user_id]
