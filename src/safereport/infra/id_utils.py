"""Prefixed ID generation.

All public-facing IDs use a ``{prefix}_{random}`` format so that any
ID can be visually identified by its origin:

- ``inc_a8Kx3nQ9mP2r``  incident record
- ``intake_L7wBd4Fj9Ks2``  in-memory intake conversation
- ``evid_kJ3pW7mD4bNx``  stored evidence file
"""

import re
import secrets
import string

_ALPHABET = string.ascii_letters + string.digits  # a-z A-Z 0-9
_DEFAULT_LENGTH = 12  # ~71 bits of entropy

PREFIX_INCIDENT = "inc"
PREFIX_INTAKE = "intake"
PREFIX_EVIDENCE = "evid"


def generate_id(prefix: str, length: int = _DEFAULT_LENGTH) -> str:
    """Generate a prefixed random ID.

    Args:
        prefix: Short descriptor (e.g. ``"inc"``, ``"intake"``).
        length: Number of random alphanumeric characters after the prefix.

    Returns:
        ``"{prefix}_{random}"`` string.
    """
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(length))
    return f"{prefix}_{suffix}"


_SAFE_IDENTIFIER = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.@-]{0,127}$")


def is_safe_identifier(value: str) -> bool:
    """True when *value* is usable as a single storage path segment."""
    return bool(_SAFE_IDENTIFIER.match(value)) and ".." not in value
