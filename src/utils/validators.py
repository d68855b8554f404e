"""Identity validation helpers shared by the aggregator, cache and handlers."""

import re

from utils.error_handling import InvalidIdentityError

# Anything@anything.tld, no whitespace. Directory APIs reject record ids
# passed where an address is expected with an opaque error, so we check first.
_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def normalize_identity(identity: str) -> str:
    """Return the cache/merge key for an email address."""
    return (identity or "").strip().lower()


def is_valid_email(identity: str) -> bool:
    """True if the value looks like a well-formed email address."""
    return bool(identity) and bool(_EMAIL_PATTERN.match(identity.strip()))


def validate_identity(identity: str) -> str:
    """Normalize an identity or raise InvalidIdentityError."""
    if not isinstance(identity, str) or not is_valid_email(identity):
        raise InvalidIdentityError(identity)
    return normalize_identity(identity)
