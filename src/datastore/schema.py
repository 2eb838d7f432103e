"""Schema inference from a header row.

Column names are normalized into lower-case identifiers made of letters,
digits and underscores, bounded by ``MAX_COLUMN_LENGTH`` and unique within
the schema. Types are not inferred from data: every column gets the
text-compatible default so that ambiguous values never block an import.
"""

import re
from collections import Counter

from datastore.types import Schema

MAX_COLUMN_LENGTH = 64
# Room left after truncation for a "_<n>" suffix.
SUFFIX_RESERVE = 5
DEFAULT_TYPE = "text"
FALLBACK_NAME = "column"

_WHITESPACE = re.compile(r"\s+")
_DISALLOWED = re.compile(r"[^a-z0-9_]+")


def sanitize_name(name: str) -> str:
    """Normalize one header field into an identifier.

    >>> sanitize_name("column name with spaces in it")
    'column_name_with_spaces_in_it'
    >>> sanitize_name("Product1 revenue ($)")
    'product1_revenue'
    """
    name = _WHITESPACE.sub("_", name.strip())
    name = _DISALLOWED.sub("_", name.lower())
    return name.strip("_") or FALLBACK_NAME


def _with_suffix(base: str, n: int) -> str:
    suffix = f"_{n}"
    return base[: MAX_COLUMN_LENGTH - len(suffix)] + suffix


def truncate_names(names: list[str]) -> list[str]:
    """Shorten names over the length bound, numbering each shared prefix from 0."""
    prefix_counts: dict[str, int] = {}
    result = []
    for name in names:
        if len(name) > MAX_COLUMN_LENGTH:
            prefix = name[: MAX_COLUMN_LENGTH - SUFFIX_RESERVE]
            n = prefix_counts.get(prefix, 0)
            prefix_counts[prefix] = n + 1
            name = f"{prefix}_{n}"
        result.append(name)
    return result


def deduplicate_names(names: list[str]) -> list[str]:
    """Number every member of a colliding group from 0, in column order.

    Names that occur once are kept as they are. A suffixed name that is
    already taken moves on to the next free number.
    """
    counts = Counter(names)
    taken = {name for name in names if counts[name] == 1}
    next_index: dict[str, int] = {}
    result = []
    for name in names:
        if counts[name] == 1:
            result.append(name)
            continue
        n = next_index.get(name, 0)
        unique = _with_suffix(name, n)
        while unique in taken:
            n += 1
            unique = _with_suffix(name, n)
        next_index[name] = n + 1
        taken.add(unique)
        result.append(unique)
    return result


def build_schema(header: list[str], default_type: str = DEFAULT_TYPE) -> Schema:
    """Build an ordered name -> type mapping with one entry per header field."""
    names = deduplicate_names(truncate_names([sanitize_name(field) for field in header]))
    return {name: default_type for name in names}
