"""Deterministic classifier built on the static taxonomy tables.

Used offline and in tests. Topics are looked up by keyword in the current
query first and in the recent conversation second, so a follow-up such as
"what about part-time options?" still resolves to the earlier field.
"""

import logging
import re

from agents.cip_agent import CIPValidationItem, CIPValidationOutput
from agents.intent_agent import IntentOutput
from agents.rank_agent import RankingItem, RankingOutput
from agents.soc_agent import SOCValidationItem, SOCValidationOutput
from classifiers.base import Classifier
from classifiers.taxonomy import (
    SOC_TITLES,
    TopicProfile,
    cip_family,
    cip_family_code,
    dedupe,
    fallback_related_terms,
    is_cip_format,
    is_soc_format,
    soc_group,
    split_words,
    topics_in,
)
from core.conversation import ConversationContext
from core.types import normalize_level
from records.models import Record
from tools.parsing import Parsed, ParsedOk

logger = logging.getLogger(__name__)

_COMPARATIVE = re.compile(r"\b(compare|comparison|versus|vs\.?|difference between)\b", re.IGNORECASE)
_EXPLORATORY = re.compile(
    r"\b(what|which|options|explore|interested|ideas|recommend|suggest)\b", re.IGNORECASE
)


def _context_topics(context: ConversationContext) -> list[TopicProfile]:
    topics = topics_in(context.query)
    if topics:
        return topics
    for message in reversed(context.recent_user_messages()):
        topics = topics_in(message)
        if topics:
            return topics
    return topics_in(" ".join(context.programs))


def _intent_kind(query: str) -> str:
    if _COMPARATIVE.search(query):
        return "comparative"
    if _EXPLORATORY.search(query):
        return "exploratory"
    return "exact"


class RuleBasedClassifier(Classifier):
    """Keyword and taxonomy-family rules; makes no network calls."""

    name = "rules"

    def extract_intent(self, context: ConversationContext) -> Parsed[IntentOutput]:
        topics = _context_topics(context)
        if topics:
            primary = topics[0].name
            terms = dedupe([*fallback_related_terms(primary), *topics[0].keywords])
        else:
            primary = context.query
            terms = fallback_related_terms(primary)
        return ParsedOk(
            IntentOutput(
                primary_topic=primary,
                related_terms=terms,
                kind=_intent_kind(context.query),
                level=normalize_level(context.query),
            )
        )

    def _score(
        self, record: Record, topic: str, related_terms: list[str], profile: TopicProfile | None
    ) -> RankingItem:
        text = record.text
        if topic.lower() in text:
            return RankingItem(index=0, score=10, match_type="exact",
                               reasoning=f"Mentions {topic} directly")
        for term in related_terms:
            if term.lower() in text:
                return RankingItem(index=0, score=8, match_type="synonym",
                                   reasoning=f"Mentions related term '{term}'")
        if (
            profile is not None
            and record.classification_code
            and cip_family_code(record.classification_code) in profile.cip_families
        ):
            return RankingItem(index=0, score=6, match_type="related",
                               reasoning=f"Classified under {cip_family(record.classification_code)}")
        if any(word in text for word in split_words(topic)):
            return RankingItem(index=0, score=4, match_type="broad",
                               reasoning="Shares a word with the topic")
        return RankingItem(index=0, score=2, match_type="broad", reasoning="No clear connection")

    def score_batches(
        self,
        topic: str,
        related_terms: list[str],
        batches: list[list[Record]],
        context: ConversationContext,
    ) -> list[Parsed[RankingOutput]]:
        profiles = topics_in(topic)
        profile = profiles[0] if profiles else None
        results: list[Parsed[RankingOutput]] = []
        for batch in batches:
            rankings = [
                self._score(record, topic, related_terms, profile).model_copy(update={"index": idx})
                for idx, record in enumerate(batch, start=1)
            ]
            results.append(ParsedOk(RankingOutput(rankings=rankings)))
        return results

    def _validate_code(
        self, code: str, titles: list[str], context: ConversationContext
    ) -> CIPValidationItem:
        if not is_cip_format(code):
            return CIPValidationItem(
                original_code=code, validated_code=code, is_valid=False, family="Unknown",
                category="Unknown", confidence=0, reasoning="Code is not in NN.NNNN format",
            )
        # the program titles describe the field better than the conversation does
        expected = topics_in(" ".join(titles)) or _context_topics(context)
        family = cip_family(code)
        if not expected:
            return CIPValidationItem(
                original_code=code, validated_code=code, is_valid=True, family=family,
                category=family, confidence=60, reasoning="Well-formed code, no topic to compare",
            )
        if any(cip_family_code(code) in topic.cip_families for topic in expected):
            return CIPValidationItem(
                original_code=code, validated_code=code, is_valid=True, family=family,
                category=family, confidence=90,
                reasoning=f"{family} matches {expected[0].name}",
            )
        corrected = expected[0].canonical_cip
        logger.debug("Correcting %s -> %s for %s", code, corrected, expected[0].name)
        return CIPValidationItem(
            original_code=code, validated_code=corrected, is_valid=True, corrected=True,
            family=cip_family(corrected), category=cip_family(corrected), confidence=80,
            reasoning=f"{family} does not fit {expected[0].name} programs",
        )

    def validate_cip(
        self, samples: dict[str, list[str]], context: ConversationContext
    ) -> Parsed[CIPValidationOutput]:
        return ParsedOk(
            CIPValidationOutput(
                validations=[
                    self._validate_code(code, titles, context) for code, titles in samples.items()
                ]
            )
        )

    def validate_soc(
        self, codes: list[str], context: ConversationContext
    ) -> Parsed[SOCValidationOutput]:
        expected = _context_topics(context)
        groups = set().union(*(topic.soc_groups for topic in expected)) if expected else set()
        validations = []
        for code in codes:
            title = SOC_TITLES.get(code, "Unknown")
            if not is_soc_format(code):
                validations.append(SOCValidationItem(
                    original_code=code, is_relevant=False, family="Unknown", title=title,
                    confidence=0, reasoning="Code is not in NN-NNNN format",
                ))
                continue
            family = soc_group(code)
            if not groups:
                validations.append(SOCValidationItem(
                    original_code=code, is_relevant=True, family=family, title=title,
                    confidence=50, reasoning="No topic to compare against",
                ))
            elif code[:2] in groups:
                validations.append(SOCValidationItem(
                    original_code=code, is_relevant=True, family=family, title=title,
                    confidence=85, reasoning=f"{family} occupations fit {expected[0].name}",
                ))
            else:
                validations.append(SOCValidationItem(
                    original_code=code, is_relevant=False, family=family, title=title,
                    confidence=85, reasoning=f"{family} occupations do not fit {expected[0].name}",
                ))
        return ParsedOk(SOCValidationOutput(validations=validations))
