import math
import re

EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
TRUE_STRINGS = ('true', '1', 'yes', 'on')
FALSE_STRINGS = ('false', '0', 'no', 'off', '')


def clean_email(email):
    """
    Clean and normalize email addresses
    - Convert to lowercase
    - Remove leading/trailing whitespace
    """
    if not email:
        return ""

    return str(email).strip().lower()


def is_valid_email(email):
    """Loose syntactic check; delivery is the real test."""
    return bool(email) and EMAIL_PATTERN.match(email) is not None


def clean_text_field(text):
    """
    General text field cleaning
    - Remove leading/trailing whitespace
    - Replace multiple spaces with single space
    """
    if text is None:
        return ""

    return re.sub(r'\s+', ' ', str(text).strip())


def to_camel_case(key):
    """roll_number -> rollNumber"""
    head, *rest = key.split('_')
    return head + ''.join(part.title() for part in rest)


def parse_number(value, field, minimum=None, maximum=None, integer=False):
    """
    Coerce a form/JSON value to a number.

    Raises:
        ValueError: with a message naming the field
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValueError(f"{field} is required")

    try:
        number = int(value) if integer else float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{field} must be a number")

    if not math.isfinite(number):
        raise ValueError(f"{field} must be a finite number")

    if minimum is not None and number < minimum:
        raise ValueError(f"{field} must be at least {minimum}")
    if maximum is not None and number > maximum:
        raise ValueError(f"{field} must be at most {maximum}")

    return number


def parse_bool(value, field):
    """
    Coerce a JSON or form flag to a bool.

    Strings are matched case-insensitively, so "false" and "0" are False.

    Raises:
        ValueError: for anything that is not a recognizable flag
    """
    if isinstance(value, bool):
        return value

    if isinstance(value, int) and value in (0, 1):
        return bool(value)

    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_STRINGS:
            return True
        if lowered in FALSE_STRINGS:
            return False

    raise ValueError(f"{field} must be true or false")
