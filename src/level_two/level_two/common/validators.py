from __future__ import annotations

import re

from ..core.exceptions import ValidationError

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} مطلوب")
    return value.strip()


def require_min_length(value: str, field_name: str, min_len: int) -> str:
    if value is None or len(value) < min_len:
        raise ValidationError(f"{field_name} يجب أن تكون {min_len} أحرف على الأقل")
    return value


def require_email(value: str) -> str:
    value = require_non_empty(value, "البريد الإلكتروني").lower()
    if not _EMAIL_RE.match(value):
        raise ValidationError("البريد الإلكتروني غير صالح")
    return value
