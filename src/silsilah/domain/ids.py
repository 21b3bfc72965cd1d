"""Person identifier generation.

Identifiers are human-readable slugs of the display name
(``"William Smith"`` -> ``"william-smith"``), matching the identifiers
used by imported and hand-built trees. Uniqueness is per tree.

INVARIANT: IDs are permanent. Once assigned, a person ID never changes.
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Container

MAX_ID_LENGTH = 64

PERSON_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,63}$")


def slugify_name(name: str) -> str:
    """Normalize a display name into an identifier slug.

    Strips accents (NFKD), lowercases, replaces runs of non-alphanumerics
    with a single hyphen and trims hyphens from both ends.

    Examples:
        >>> slugify_name("William Smith")
        'william-smith'
        >>> slugify_name("  José  O'Neil ")
        'jose-o-neil'
    """
    text = unicodedata.normalize("NFKD", name)
    text = text.encode("ascii", "ignore").decode("ascii").lower()
    text = re.sub(r"[^a-z0-9]+", "-", text).strip("-")
    return text[:MAX_ID_LENGTH].rstrip("-") or "person"


def generate_person_id(name: str, taken: Container[str]) -> str:
    """Return a slug for *name* not present in *taken*.

    Collisions get a numeric suffix: ``john-smith``, ``john-smith-2``, ...
    """
    base = slugify_name(name)
    if base not in taken:
        return base
    n = 2
    while True:
        candidate = f"{base[: MAX_ID_LENGTH - len(str(n)) - 1]}-{n}"
        if candidate not in taken:
            return candidate
        n += 1


def validate_person_id(person_id: str) -> bool:
    """Check whether *person_id* is a well-formed identifier."""
    return PERSON_ID_PATTERN.match(person_id) is not None
