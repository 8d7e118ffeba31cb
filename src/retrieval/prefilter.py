import logging
import typing as typ

from classifiers.taxonomy import dedupe, split_words
from records.models import Record
from retrieval.models import PrefilterResult, SearchIntent

logger = logging.getLogger(__name__)


def search_terms(intent: SearchIntent) -> list[str]:
    """Lower-cased match terms for `intent`.

    Includes the topic, the related terms, their space-free compound forms
    ("cyber security" -> "cybersecurity") and their individual words.
    """
    phrases = [intent.primary_topic, *intent.related_terms]
    terms: list[str] = []
    for phrase in phrases:
        lowered = phrase.lower().strip()
        terms.append(lowered)
        compact = "".join(lowered.split())
        if compact != lowered:
            terms.append(compact)
    for phrase in phrases:
        terms.extend(split_words(phrase))
    return dedupe(term for term in terms if term)


_SUFFIXES = ("ation", "ing", "ies", "ers", "er", "ic", "al", "y", "s")


def stem(word: str) -> str:
    """Strip one common suffix, keeping at least four characters."""
    for suffix in _SUFFIXES:
        if word.endswith(suffix) and len(word) - len(suffix) >= 4:
            return word[: -len(suffix)]
    return word


def _matching(records: typ.Sequence[Record], terms: list[str]) -> list[Record]:
    return [record for record in records if any(term in record.text for term in terms)]


class CandidatePrefilter:
    """Cheap lenient substring filter run before ranking."""

    def __init__(self, broad_limit: int = 100):
        self.broad_limit = broad_limit

    def filter(self, records: typ.Sequence[Record], intent: SearchIntent) -> PrefilterResult:
        if not records:
            return PrefilterResult(records=[], stage="terms")

        terms = search_terms(intent)
        matched = _matching(records, terms)
        if matched:
            logger.info("Prefilter kept %d/%d records on %d terms", len(matched), len(records), len(terms))
            return PrefilterResult(records=matched, stage="terms")

        # stems of the topic words, e.g. "photography" -> "photograph"
        topic_words = dedupe(stem(word) for word in split_words(intent.primary_topic))
        matched = _matching(records, topic_words) if topic_words else []
        if matched:
            logger.info("Prefilter fell back to topic words %s: %d records", topic_words, len(matched))
            return PrefilterResult(records=matched, stage="topic_words")

        logger.warning(
            "No records matched %r, passing the first %d records through as broad candidates",
            intent.primary_topic, min(self.broad_limit, len(records)),
        )
        return PrefilterResult(records=list(records[: self.broad_limit]), stage="broad")
