"""Input checks run before anything is written to the database.

Each ``validate_*`` function returns the user-facing error message, or
``None`` when the input is acceptable. Routes turn a message into an
``errors.InvalidInput``.
"""

from datetime import date, datetime

from backend.core import config

REQUIRED_REGISTRATION_FIELDS = 'All fields are required'
REQUIRED_LOGIN_FIELDS = 'Email and password required'
REQUIRED_STUDENT_FIELDS = 'fullName, studentId and email are required'
PASSWORD_TOO_SHORT = f'Password must be at least {config.MIN_PASSWORD_LENGTH} characters'
BLANK_PROFILE_FIELD = 'Full name and email cannot be blank'
INVALID_ENROLLMENT_DATE = 'Invalid enrollment date'


def normalize_email(value: str) -> str:
    return value.strip().lower()


def is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


def validate_password(password: str) -> str | None:
    if len(password) < config.MIN_PASSWORD_LENGTH:
        return PASSWORD_TOO_SHORT
    return None


def validate_registration(full_name: str | None, email: str | None, password: str | None) -> str | None:
    if is_blank(full_name) or is_blank(email) or not password:
        return REQUIRED_REGISTRATION_FIELDS
    return validate_password(password)


def validate_login(email: str | None, password: str | None) -> str | None:
    if is_blank(email) or not password:
        return REQUIRED_LOGIN_FIELDS
    return None


def validate_profile_update(full_name: str | None, email: str | None, password: str | None) -> str | None:
    # None means "leave unchanged"; an empty password also means unchanged.
    if (full_name is not None and is_blank(full_name)) or (email is not None and is_blank(email)):
        return BLANK_PROFILE_FIELD
    if password:
        return validate_password(password)
    return None


def validate_student_fields(full_name: str | None, student_id: str | None, email: str | None) -> str | None:
    if is_blank(full_name) or is_blank(student_id) or is_blank(email):
        return REQUIRED_STUDENT_FIELDS
    return None


def parse_enrollment_date(value: str | None) -> date | None:
    """Parse an ISO date or datetime string; empty input yields ``None``.

    Raises ``ValueError`` for anything else.
    """
    if value is None or not value.strip():
        return None

    normalized = value.strip()
    try:
        return date.fromisoformat(normalized)
    except ValueError:
        pass

    if normalized.endswith('Z'):
        normalized = normalized[:-1] + '+00:00'
    return datetime.fromisoformat(normalized).date()
