import typing as typ

IntentKind = typ.Literal["exact", "exploratory", "comparative"]
MatchType = typ.Literal["exact", "synonym", "related", "broad"]

INTENT_KINDS: tuple[str, ...] = typ.get_args(IntentKind)
MATCH_TYPES: tuple[str, ...] = typ.get_args(MatchType)

LEVELS: dict[str, str] = {
    "2-year": "2-Year",
    "two year": "2-Year",
    "associate": "2-Year",
    "4-year": "4-Year",
    "four year": "4-Year",
    "bachelor": "4-Year",
    "non-credit": "Non-Credit",
    "noncredit": "Non-Credit",
    "certificate": "Non-Credit",
}


def normalize_level(value: typ.Any) -> str | None:
    """Map free-form level names onto the canonical level labels."""
    if not isinstance(value, str) or not value.strip():
        return None
    key = value.strip().lower()
    if key in LEVELS:
        return LEVELS[key]
    for alias, level in LEVELS.items():
        if alias in key:
            return level
    return None
