import logging

from agents.intent_agent import IntentOutput
from classifiers.base import Classifier
from classifiers.taxonomy import dedupe, fallback_related_terms, split_words, topics_in
from core.conversation import ConversationContext, ConversationTurn
from core.errors import InvalidQueryError
from retrieval.models import SearchIntent
from tools.cache import Cache, cache_get_model, cache_set, fingerprint
from tools.parsing import ParsedOk

logger = logging.getLogger(__name__)


class IntentExtractor:
    """Turns a query and its conversation into a `SearchIntent`.

    Classifier failures never surface: the raw query becomes the topic and
    related terms come from the local synonym table.
    """

    def __init__(
        self,
        classifier: Classifier,
        cache: Cache | None = None,
        cache_ttl_seconds: float = 3600.0,
    ):
        self.classifier = classifier
        self.cache = cache
        self.cache_ttl_seconds = cache_ttl_seconds

    def extract(
        self,
        query: str,
        history: None | str | list[ConversationTurn | dict] = None,
    ) -> SearchIntent:
        if not query or not query.strip():
            raise InvalidQueryError("query", query, "Query cannot be empty")
        context = ConversationContext.build(query, history)
        key = fingerprint("intent", self.classifier.name, context)

        cached = cache_get_model(self.cache, key, SearchIntent)
        if cached is not None:
            logger.debug("Intent cache hit for %r", context.query)
            return cached

        result = self.classifier.extract_intent(context)
        if not isinstance(result, ParsedOk) or not isinstance(result.value, IntentOutput):
            logger.warning(
                "Intent extraction failed for %r, using local fallback: %s",
                context.query,
                getattr(result, "reason", "unexpected result"),
            )
            return self.fallback(context.query)

        intent = self._from_output(context.query, result.value)
        cache_set(self.cache, key, intent.model_dump(mode="json"), self.cache_ttl_seconds)
        logger.info(
            "Intent: topic=%r kind=%s terms=%d level=%s",
            intent.primary_topic, intent.kind, len(intent.related_terms), intent.level,
        )
        return intent

    @staticmethod
    def fallback(query: str) -> SearchIntent:
        """Intent built without a classifier."""
        topic = query.strip()
        return SearchIntent(
            primary_topic=topic,
            related_terms=fallback_related_terms(topic),
            kind="exact",
        )

    @staticmethod
    def _from_output(query: str, output: IntentOutput) -> SearchIntent:
        topic = output.primary_topic or query.strip()
        terms = dedupe(output.related_terms) or fallback_related_terms(topic)
        return SearchIntent(
            primary_topic=topic, related_terms=terms, kind=output.kind, level=output.level
        )

    def broaden(self, intent: SearchIntent, attempt: int) -> SearchIntent:
        """Widen `intent` for retry number `attempt` (1-based).

        Every retry drops the level restriction and splits multi-word terms.
        From the second retry on, keywords of every matching topic are added.
        """
        terms = list(intent.related_terms)
        terms.extend(split_words(intent.primary_topic))
        for term in intent.related_terms:
            terms.extend(split_words(term))
        terms.extend(fallback_related_terms(intent.primary_topic))
        if attempt >= 2:
            for topic in topics_in(" ".join([intent.primary_topic, *intent.related_terms])):
                terms.extend(topic.keywords)
        broadened = intent.model_copy(
            update={"related_terms": dedupe(terms), "kind": "exploratory", "level": None}
        )
        logger.info(
            "Broadened intent (attempt %d): %d -> %d terms",
            attempt, len(intent.related_terms), len(broadened.related_terms),
        )
        return broadened
