"""Region aliases and institution display names."""

import functools
import logging
import re

logger = logging.getLogger(__name__)

INSTITUTION_NAMES: dict[str, str] = {
    "HAW": "Hawaii Community College",
    "HON": "Honolulu Community College",
    "KAP": "Kapiolani Community College",
    "KAU": "Kauai Community College",
    "LEE": "Leeward Community College",
    "MAU": "UH Maui College",
    "HIL": "University of Hawaii at Hilo",
    "MAN": "University of Hawaii at Manoa",
    "WHO": "University of Hawaii at West Oahu",
    "WIN": "Windward Community College",
}

# Longer aliases first so "pearl city" wins over shorter overlaps.
REGION_PATTERNS: dict[str, str] = {
    "big island": "Hawaii",
    "king kekaulike": "Maui",
    "pearl city": "Oahu",
    "lahainaluna": "Maui",
    "o'ahu": "Oahu",
    "oahu": "Oahu",
    "honolulu": "Oahu",
    "kaneohe": "Oahu",
    "waipahu": "Oahu",
    "mililani": "Oahu",
    "kapolei": "Oahu",
    "kailua": "Oahu",
    "waianae": "Oahu",
    "farrington": "Oahu",
    "campbell": "Oahu",
    "kahuku": "Oahu",
    "maui": "Maui",
    "kahului": "Maui",
    "wailuku": "Maui",
    "baldwin": "Maui",
    "molokai": "Maui",
    "lanai": "Maui",
    "kaua'i": "Kauai",
    "kauai": "Kauai",
    "lihue": "Kauai",
    "kapaa": "Kauai",
    "waimea": "Kauai",
    "hawai'i": "Hawaii",
    "hawaii": "Hawaii",
    "hilo": "Hawaii",
    "kona": "Hawaii",
    "waiakea": "Hawaii",
    "kealakehe": "Hawaii",
}

_NAME_TO_CODE = {name.lower(): code for code, name in INSTITUTION_NAMES.items()}
_REGION_REGEXES = [
    (pattern, re.compile(rf"\b{re.escape(pattern)}\b"), region) for pattern, region in REGION_PATTERNS.items()
]


def normalize_region(region: str) -> str:
    """Map a region name or alias to its canonical name."""
    key = region.strip().lower()
    return REGION_PATTERNS.get(key, region.strip().title())


def detect_region(text: str) -> str | None:
    """Return the first region mentioned in `text`, if any."""
    lowered = text.lower()
    for pattern, regex, region in _REGION_REGEXES:
        if regex.search(lowered):
            logger.debug("Detected region %s (matched %r)", region, pattern)
            return region
    return None


def campus_name(institution_id: str) -> str:
    """Display name for an institution code; unknown codes are returned as-is."""
    name = INSTITUTION_NAMES.get(institution_id.upper())
    if name is None:
        _warn_unknown_institution(institution_id.upper())
        return institution_id
    return name


@functools.lru_cache(maxsize=None)
def _warn_unknown_institution(code: str) -> None:
    logger.warning("Unknown institution code: %s", code)


def institution_code(name_or_code: str) -> str:
    """Resolve a campus name to its institution code; codes pass through."""
    value = name_or_code.strip()
    if value.upper() in INSTITUTION_NAMES:
        return value.upper()
    return _NAME_TO_CODE.get(value.lower(), value)
