from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.validators import require_email, require_min_length, require_non_empty
from ..core.constants import FALLBACK_USER_NAME, MIN_PASSWORD_LENGTH
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError, LoadError, ValidationError
from .model import User
from .repository import UserRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionUser:
    """What we store into the Flask session after login."""

    user_id: str
    name: str
    email: str
    role: Role


class AuthService:
    """Use case: sign in / sign up."""

    def __init__(self, users: UserRepository):
        self._users = users

    def authenticate(self, email: str, password: str) -> SessionUser:
        email = (email or "").strip().lower()
        user = self._users.get_by_email(email) if email else None
        if not user:
            raise AuthenticationError("البريد الإلكتروني أو كلمة المرور غير صحيحة")

        try:
            ok = check_password_hash(user.password_hash, password or "")
        except ValueError:
            # e.g. placeholder hashes like 'CHANGE_ME' or corrupted values
            ok = False

        if not ok:
            raise AuthenticationError("البريد الإلكتروني أو كلمة المرور غير صحيحة")

        return SessionUser(user_id=user.id, name=user.name, email=user.email, role=user.role)

    def sign_up(self, *, name: str, email: str, password: str, confirm_password: str) -> str:
        if password != confirm_password:
            raise ValidationError("كلمات المرور غير متطابقة")
        return _create_account(self._users, name=name, email=email, password=password, role=Role.SERVANT)


class UserService:
    """Use case: manage users (admin)."""

    def __init__(self, users: UserRepository):
        self._users = users

    def list_users(self, query: str = "") -> list[User]:
        q = (query or "").strip().casefold()
        users = list(self._users.list_all())
        if not q:
            return users
        return [u for u in users if q in u.name.casefold() or q in u.email.casefold()]

    def create_servant(self, *, current_role: Role, name: str, email: str, password: str) -> str:
        if current_role != Role.ADMIN:
            raise AuthorizationError("ليس لديك صلاحية")
        return _create_account(self._users, name=name, email=email, password=password, role=Role.SERVANT)

    def delete_user(self, *, current_role: Role, user_id: str) -> None:
        if current_role != Role.ADMIN:
            raise AuthorizationError("ليس لديك صلاحية")

        user = self._users.get_by_id(user_id)
        if not user:
            raise ValidationError("المستخدم غير موجود")
        if user.role == Role.ADMIN:
            raise ValidationError("لا يمكن حذف حساب مدير")

        if not self._users.delete_by_id(user_id):
            raise ValidationError("فشل حذف المستخدم")


class UserDirectory:
    """id -> display name lookup for notices and section headers."""

    def __init__(self, users: UserRepository):
        self._users = users
        self._names: dict[str, str] = {}
        self._order: list[str] = []

    def load(self) -> None:
        try:
            users = sorted(self._users.list_all(), key=lambda u: u.name.casefold())
        except LoadError:
            # Non-fatal: names fall back to a generic label.
            logger.exception("users load failed")
            users = []
        self._names = {u.id: u.name for u in users}
        self._order = [u.id for u in users]

    def name_of(self, user_id: Optional[str], fallback: str = FALLBACK_USER_NAME) -> str:
        if not user_id:
            return fallback
        return self._names.get(user_id, fallback)

    @property
    def ordered_ids(self) -> list[str]:
        return list(self._order)


def _create_account(users: UserRepository, *, name: str, email: str, password: str, role: Role) -> str:
    name = require_non_empty(name, "الاسم")
    email = require_email(email)
    require_min_length(password, "كلمة المرور", MIN_PASSWORD_LENGTH)

    if users.get_by_email(email):
        raise ValidationError("البريد الإلكتروني مستخدم بالفعل")

    user_id = users.create_user(name=name, email=email, password_hash=generate_password_hash(password), role=role)
    logger.info("account created: %s (%s, %s)", name, email, role.value)
    return user_id
