"""Legacy Achievement Keys — compatibility with keys stored with doubled single quotes.

Invariants:
    - Keys leaving the store never contain '' (collapsed to ')
    - A lookup key containing ' matches both its exact form and its '' form
    - Pure functions, no IO

Design Decisions:
    - Shim kept at read time only: rows written with doubled quotes by old
      releases are never rewritten in place
"""

_QUOTE = "'"
_DOUBLED_QUOTE = "''"


def collapse_doubled_quotes(key: str) -> str:
    """Undo the historical '' encoding on a stored key."""
    return key.replace(_DOUBLED_QUOTE, _QUOTE)


def needs_legacy_match(key: str) -> bool:
    return _QUOTE in key


def lookup_variants(key: str) -> tuple[str, ...]:
    """Stored forms a lookup key may match: itself, plus the doubled form if it has quotes."""
    if not needs_legacy_match(key):
        return (key,)
    return (key, key.replace(_QUOTE, _DOUBLED_QUOTE))
