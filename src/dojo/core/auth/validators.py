"""Corporate email and password policy."""

import re

from email_validator import EmailNotValidError, validate_email

from dojo.core.exceptions import InvalidEmail, PersonalEmailNotAllowed, WeakPassword

PERSONAL_EMAIL_DOMAINS = frozenset(
    {
        "gmail.com",
        "yahoo.com",
        "hotmail.com",
        "outlook.com",
        "aol.com",
        "icloud.com",
        "protonmail.com",
        "tutanota.com",
        "live.com",
        "me.com",
        "mac.com",
        "msn.com",
        "ymail.com",
    }
)

_PASSWORD_MIN_LENGTH = 8
_PASSWORD_RULES = (
    re.compile(r"[a-z]"),
    re.compile(r"[A-Z]"),
    re.compile(r"\d"),
    re.compile(r"[@$!%*?&]"),
)


def normalize_email(email: str) -> str:
    """Trim and lower-case an email address."""
    return email.strip().lower()


def email_domain(email: str) -> str:
    """Domain part of an email address, lower-cased."""
    return normalize_email(email).rpartition("@")[2]


def is_corporate_email(email: str) -> bool:
    """Whether the address is not on a personal mail provider.

    Universities and other organisations count as corporate.
    """
    return email_domain(email) not in PERSONAL_EMAIL_DOMAINS


def validate_corporate_email(email: str) -> str:
    """Normalize an email and check that it is a well-formed corporate address.

    Syntax is checked with the same rules the Identity model applies, so an
    address accepted here can always be stored.

    Args:
        email: Raw email address.

    Returns:
        The normalized address.

    Raises:
        InvalidEmail: If the address is malformed.
        PersonalEmailNotAllowed: If the domain is a personal provider.
    """
    try:
        normalized = validate_email(normalize_email(email), check_deliverability=False).normalized
    except EmailNotValidError:
        raise InvalidEmail() from None
    if not is_corporate_email(normalized):
        raise PersonalEmailNotAllowed()
    return normalized


def validate_password_strength(password: str) -> None:
    """Enforce the password complexity rule.

    Raises:
        WeakPassword: If the password is too short or misses a character class.
    """
    if len(password) < _PASSWORD_MIN_LENGTH:
        raise WeakPassword()
    if not all(rule.search(password) for rule in _PASSWORD_RULES):
        raise WeakPassword()
