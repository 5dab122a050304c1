"""
URL slug derivation for teams, projects and templates.
"""

import re
import secrets

_NON_ALNUM = re.compile(r"[^a-z0-9]+")

MAX_SLUG_LENGTH = 200


def slugify(value: str, fallback: str = "item") -> str:
    """Lower-case, collapse every run of non-alphanumerics to one hyphen, trim hyphens.

    >>> slugify("My Cool Team!")
    'my-cool-team'
    """
    slug = _NON_ALNUM.sub("-", (value or "").lower()).strip("-")
    slug = slug[:MAX_SLUG_LENGTH].rstrip("-")
    return slug or fallback


def numbered_slug(base: str, attempt: int) -> str:
    """``base`` for the first attempt, then ``base-1``, ``base-2``..."""
    return base if attempt == 0 else f"{base}-{attempt}"


def random_suffix_slug(base: str, attempt: int) -> str:
    """``base`` for the first attempt, then ``base-<8 hex chars>``."""
    return base if attempt == 0 else f"{base}-{secrets.token_hex(4)}"
