"""Input validation and email hashing for lookup requests."""

import hashlib
import re
from typing import Any

from blacklist_alliance.common.exceptions import BlacklistAllianceError

MAX_EMAIL_LENGTH = 254

_NON_DIGITS = re.compile(r"\D")
_LINE_BREAKS = re.compile(r"[\r\n]")
# Deliberately loose: one @, no whitespace, a dot in the domain
_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def validate_phone(phone: Any) -> str:
    """
    Strip formatting from a phone number and check its length.

    Args:
        phone: Phone number in any formatting, e.g. "(222) 333-4444"

    Returns:
        Digits only, 10 or 11 characters

    Raises:
        BlacklistAllianceError: VALIDATION if the digit count is wrong
    """
    cleaned = _NON_DIGITS.sub("", str(phone))
    if len(cleaned) < 10 or len(cleaned) > 11:
        raise BlacklistAllianceError.validation(
            f"Invalid phone number: {phone}. Expected 10-11 digits."
        )
    return cleaned


def validate_email(email: Any) -> str:
    """
    Trim an email address and check its format.

    Args:
        email: Email address

    Returns:
        Address with surrounding whitespace and line breaks removed

    Raises:
        BlacklistAllianceError: VALIDATION on bad format or length
    """
    sanitized = _LINE_BREAKS.sub("", str(email)).strip()
    if not _EMAIL_PATTERN.match(sanitized):
        raise BlacklistAllianceError.validation(f"Invalid email format: {email}")
    if len(sanitized) > MAX_EMAIL_LENGTH:
        raise BlacklistAllianceError.validation(
            f"Email too long: {email}. Max {MAX_EMAIL_LENGTH} characters."
        )
    return sanitized


def hash_email(email: Any) -> str:
    """
    MD5 hex digest of a normalized email address.

    The address is lowercased and trimmed first so that hashes match the
    ones the API computes for its own records.
    """
    sanitized = _LINE_BREAKS.sub("", str(email)).lower().strip()
    return hashlib.md5(sanitized.encode("utf-8")).hexdigest()  # nosec B324
