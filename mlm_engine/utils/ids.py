"""Identifier helpers for members, sales and transactions."""

import re
import uuid

_CODE_RE = re.compile(r"^(?P<prefix>[A-Za-z]+)(?P<number>\d+)$")


def format_member_code(number: int, prefix: str = "MB", width: int = 7) -> str:
    """Render a member code, e.g. ``MB0000042``."""
    if number < 1:
        raise ValueError(f"Member code number must be positive, got {number}")
    return f"{prefix}{number:0{width}d}"


def parse_member_code(code: str) -> int | None:
    """Return the numeric part of a member code, or None if malformed."""
    match = _CODE_RE.match(code or "")
    if not match:
        return None
    return int(match.group("number"))


def next_member_code(
    last_code: str | None, prefix: str = "MB", width: int = 7
) -> str:
    """
    Produce the code following ``last_code``.

    Args:
        last_code: Highest code issued so far (None for an empty directory)
        prefix: Code prefix
        width: Zero-padded width of the numeric part

    Returns:
        Next sequential member code

    Example:
        >>> next_member_code("MB0000041")
        'MB0000042'
    """
    last_number = parse_member_code(last_code) if last_code else None
    return format_member_code((last_number or 0) + 1, prefix, width)


def generate_sale_id() -> str:
    return f"sale_{uuid.uuid4().hex}"


def generate_transaction_id() -> str:
    return f"txn_{uuid.uuid4().hex}"


def generate_distribution_id() -> str:
    return f"pool_{uuid.uuid4().hex}"
