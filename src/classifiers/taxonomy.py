"""Static tables for local classification checks.

These tables back the format-only fallbacks and the rule-based classifier.
They are a working subset of the national taxonomies, not a full copy.
"""

import re
import typing as typ
from dataclasses import dataclass

CIP_PATTERN = re.compile(r"^\d{2}\.\d{4}$")
SOC_PATTERN = re.compile(r"^\d{2}-\d{4}$")

CIP_FAMILIES: dict[str, str] = {
    "01": "Agriculture",
    "03": "Natural Resources and Conservation",
    "09": "Communication and Journalism",
    "10": "Communications Technologies",
    "11": "Computer and Information Sciences",
    "12": "Culinary and Personal Services",
    "13": "Education",
    "14": "Engineering",
    "15": "Engineering Technologies",
    "23": "English Language and Literature",
    "24": "Liberal Arts and Sciences",
    "26": "Biological and Biomedical Sciences",
    "27": "Mathematics and Statistics",
    "40": "Physical Sciences",
    "43": "Homeland Security, Law Enforcement",
    "45": "Social Sciences",
    "46": "Construction Trades",
    "47": "Mechanic and Repair Technologies",
    "50": "Visual and Performing Arts",
    "51": "Health Professions",
    "52": "Business, Management, Marketing",
}

SOC_GROUPS: dict[str, str] = {
    "11": "Management",
    "13": "Business and Financial Operations",
    "15": "Computer and Mathematical",
    "17": "Architecture and Engineering",
    "19": "Life, Physical, and Social Science",
    "25": "Education and Library",
    "27": "Arts, Design, Entertainment, Sports, and Media",
    "29": "Healthcare Practitioners",
    "31": "Healthcare Support",
    "33": "Protective Service",
    "35": "Food Preparation and Serving",
    "43": "Office and Administrative Support",
    "45": "Farming, Fishing, and Forestry",
    "47": "Construction and Extraction",
    "49": "Installation, Maintenance, and Repair",
    "51": "Production",
}

SOC_TITLES: dict[str, str] = {
    "15-1251": "Computer Programmers",
    "15-1252": "Software Developers",
    "15-1254": "Web Developers",
    "15-1255": "Web and Digital Interface Designers",
    "15-1212": "Information Security Analysts",
    "27-1011": "Art Directors",
    "27-1014": "Special Effects Artists and Animators",
    "27-1024": "Graphic Designers",
    "27-4021": "Photographers",
    "27-4032": "Film and Video Editors",
    "29-1141": "Registered Nurses",
    "29-1171": "Nurse Practitioners",
    "31-9092": "Medical Assistants",
    "35-1011": "Chefs and Head Cooks",
}


@dataclass(frozen=True)
class TopicProfile:
    """Taxonomy expectations for a field of study."""

    name: str
    keywords: tuple[str, ...]
    cip_families: frozenset[str]
    canonical_cip: str
    soc_groups: frozenset[str]

    def matches(self, text: str) -> bool:
        return any(re.search(rf"\b{re.escape(kw)}\b", text, re.IGNORECASE) for kw in self.keywords)


TOPICS: tuple[TopicProfile, ...] = (
    TopicProfile(
        "nursing",
        ("nursing", "nurse", "rn", "bsn", "healthcare", "medical", "clinical", "patient care"),
        frozenset({"51"}),
        "51.3801",
        frozenset({"29", "31"}),
    ),
    TopicProfile(
        "cybersecurity",
        ("cybersecurity", "cyber security", "cyber", "information security", "network security"),
        frozenset({"11", "43"}),
        "11.1003",
        frozenset({"15"}),
    ),
    TopicProfile(
        "computer science",
        ("computer science", "computing", "software", "programming", "information technology",
         "data science", "computer"),
        frozenset({"11"}),
        "11.0701",
        frozenset({"15"}),
    ),
    TopicProfile(
        "business",
        ("business", "management", "marketing", "finance", "accounting", "entrepreneurship"),
        frozenset({"52"}),
        "52.0201",
        frozenset({"11", "13", "43"}),
    ),
    TopicProfile(
        "engineering",
        ("engineering", "engineer"),
        frozenset({"14", "15"}),
        "14.0101",
        frozenset({"17"}),
    ),
    TopicProfile(
        "education",
        ("education", "teaching", "teacher", "educator"),
        frozenset({"13"}),
        "13.0101",
        frozenset({"25"}),
    ),
    TopicProfile(
        "photography",
        ("photography", "photographer", "film", "graphic design", "digital media", "art",
         "animation"),
        frozenset({"09", "10", "50"}),
        "50.0605",
        frozenset({"27"}),
    ),
    TopicProfile(
        "culinary",
        ("culinary", "cooking", "chef", "baking", "hospitality", "tourism"),
        frozenset({"12", "52"}),
        "12.0500",
        frozenset({"35", "11"}),
    ),
    TopicProfile(
        "agriculture",
        ("agriculture", "farming", "agronomy"),
        frozenset({"01"}),
        "01.0000",
        frozenset({"45", "19"}),
    ),
    TopicProfile(
        "marine biology",
        ("marine biology", "ocean", "conservation", "biology", "environmental"),
        frozenset({"03", "26"}),
        "26.1302",
        frozenset({"19"}),
    ),
    TopicProfile(
        "automotive",
        ("automotive", "mechanic", "welding", "construction", "carpentry"),
        frozenset({"46", "47"}),
        "47.0604",
        frozenset({"47", "49", "51"}),
    ),
    TopicProfile(
        "law enforcement",
        ("criminal justice", "police", "law enforcement", "fire science"),
        frozenset({"43"}),
        "43.0107",
        frozenset({"33"}),
    ),
)

SYNONYMS: dict[str, list[str]] = {
    "cybersecurity": ["cyber security", "cybersecurity", "information security", "network security",
                      "computer security", "security specialist", "information assurance",
                      "cyber operations", "cyber", "security"],
    "cyber security": ["cybersecurity", "cyber security", "information security", "network security",
                       "computer security", "security specialist", "information assurance",
                       "cyber operations", "cyber", "security"],
    "cyber": ["cybersecurity", "cyber security", "information security", "network security",
              "security", "computer security"],
    "computer science": ["computer science", "computing", "information technology", "IT",
                         "software engineering", "computer information systems",
                         "information and computer sciences", "software"],
    "information technology": ["information technology", "IT", "computer science", "computing",
                               "information systems", "technology"],
    "nursing": ["nursing", "healthcare", "registered nurse", "RN", "medical", "nursing practice",
                "health services", "patient care"],
    "healthcare": ["healthcare", "nursing", "medical", "health services", "patient care",
                   "registered nurse"],
    "engineering": ["engineering", "engineer", "technology", "applied science", "technical"],
    "business": ["business", "business administration", "management", "entrepreneurship",
                 "commerce"],
    "education": ["education", "teaching", "educator", "instruction", "pedagogy"],
    "culinary": ["culinary", "culinary arts", "cooking", "chef", "baking", "food service"],
    "photography": ["photography", "digital media", "film", "visual arts", "graphic design",
                    "multimedia"],
}

_SPLIT_PATTERN = re.compile(r"[\s\-_(),&/]+")


def split_words(text: str, min_length: int = 3) -> list[str]:
    """Split on whitespace and punctuation, keeping words of `min_length` or more."""
    return [word for word in _SPLIT_PATTERN.split(text.lower()) if len(word) >= min_length]


def dedupe(items: typ.Iterable[str]) -> list[str]:
    """Case-insensitive, order-preserving de-duplication of non-empty strings."""
    seen: set[str] = set()
    unique: list[str] = []
    for item in items:
        key = item.strip().lower()
        if not key or key in seen:
            continue
        seen.add(key)
        unique.append(item.strip())
    return unique


def _contains_phrase(text: str, phrase: str) -> bool:
    return bool(phrase) and re.search(rf"\b{re.escape(phrase)}\b", text) is not None


def fallback_related_terms(topic: str) -> list[str]:
    """Local related terms for `topic`; never empty for a non-empty topic."""
    key = topic.lower().strip()
    terms: list[str] = list(SYNONYMS.get(key, []))
    if not terms:
        for name, synonyms in SYNONYMS.items():
            if _contains_phrase(key, name) or _contains_phrase(name, key):
                terms.extend(synonyms)
                break
    if not terms:
        words = split_words(topic)
        terms.extend(words)
        compound = "".join(words)
        if len(compound) > 3:
            terms.append(compound)
    if not terms and key:
        terms.append(key)
    return dedupe(terms)


def cip_family_code(code: str) -> str:
    return code.strip()[:2]


def cip_family(code: str) -> str:
    prefix = cip_family_code(code)
    return CIP_FAMILIES.get(prefix, f"Series {prefix}")


def soc_group(code: str) -> str:
    prefix = code.strip()[:2]
    return SOC_GROUPS.get(prefix, f"Group {prefix}")


def is_cip_format(code: str) -> bool:
    return bool(CIP_PATTERN.match(code.strip()))


def is_soc_format(code: str) -> bool:
    return bool(SOC_PATTERN.match(code.strip()))


def topics_in(text: str) -> list[TopicProfile]:
    return [topic for topic in TOPICS if topic.matches(text)]
