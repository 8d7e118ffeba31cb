import logging
import typing as typ

import pydantic

from classifiers.base import Classifier
from classifiers.oracle import OracleClassifier
from classifiers.rules import RuleBasedClassifier
from core.conversation import ConversationTurn, coerce_history
from core.errors import InvalidQueryError
from pipeline.config import MatchingSettings
from pipeline.reflection import ReflectionController, ReflectionOutcome
from records.models import Record
from records.regions import campus_name, detect_region
from records.store import RecordStore
from retrieval.intent import IntentExtractor
from retrieval.models import RankedCandidate, SearchIntent
from retrieval.prefilter import CandidatePrefilter
from retrieval.ranker import SemanticRanker
from tools.cache import Cache, DiskCache, InMemoryCache
from verification.cip import CIPVerifier
from verification.models import CareerCodeSet, CareerMapping, VerifiedRecord
from verification.soc import SOCVerifier

logger = logging.getLogger(__name__)

TARGET_RESULTS = 5


class SearchOptions(pydantic.BaseModel):
    """Per-request search options."""

    max_results: int = pydantic.Field(default=50, description="Maximum number of results.")
    min_relevance: int = pydantic.Field(default=5, description="Lowest score kept (1-10).")
    conversation_context: list[ConversationTurn] = pydantic.Field(
        default_factory=list, description="Earlier turns; a plain string is one user turn."
    )
    infer_region: bool = pydantic.Field(
        default=False, description="Detect a region in the query when none is given."
    )

    @pydantic.field_validator("conversation_context", mode="before")
    @classmethod
    def _validate_context(cls, v: typ.Any) -> list[ConversationTurn]:
        return coerce_history(v)


def _check_request(query: str, options: SearchOptions) -> None:
    if not isinstance(query, str) or not query.strip():
        raise InvalidQueryError("query", query, "Query cannot be empty")
    if options.max_results < 1:
        raise InvalidQueryError("max_results", options.max_results, "Must be at least 1")
    if not 1 <= options.min_relevance <= 10:
        raise InvalidQueryError("min_relevance", options.min_relevance, "Must be between 1 and 10")


def filter_by_level(records: typ.Sequence[Record], level: None | str) -> list[Record]:
    """Records of `level`; all records when none match."""
    if not level:
        return list(records)
    scoped = [record for record in records if record.level.lower() == level.lower()]
    if not scoped:
        logger.info("No %s records, ignoring the level filter", level)
        return list(records)
    return scoped


class ProgramSearch:
    """Search and classification checks over one record store.

    The store, the cache and the classifier are created once and shared by
    every request.
    """

    def __init__(
        self,
        store: RecordStore,
        classifier: Classifier,
        cache: Cache | None = None,
        *,
        batch_size: int = 20,
        max_candidates: int = 200,
        broad_limit: int = 100,
        omitted_score: int = 7,
        failed_score: int = 5,
        broad_score: int = 3,
        cache_ttl_seconds: float = 3600.0,
        quality_threshold: float = 5.0,
        max_attempts: int = 3,
    ):
        self.store = store
        self.classifier = classifier
        self.cache = cache
        self.broad_score = broad_score
        self.intents = IntentExtractor(classifier, cache, cache_ttl_seconds)
        self.prefilter = CandidatePrefilter(broad_limit=broad_limit)
        self.ranker = SemanticRanker(
            classifier,
            cache,
            batch_size=batch_size,
            max_candidates=max_candidates,
            omitted_score=omitted_score,
            failed_score=failed_score,
            cache_ttl_seconds=cache_ttl_seconds,
        )
        self.reflection = ReflectionController(quality_threshold, max_attempts)
        self.cip_verifier = CIPVerifier(classifier, cache, cache_ttl_seconds)
        self.soc_verifier = SOCVerifier(classifier, cache, cache_ttl_seconds)

    @classmethod
    def from_settings(
        cls, settings: MatchingSettings | None = None, classifier: Classifier | None = None
    ) -> "ProgramSearch":
        settings = settings or MatchingSettings()
        store = RecordStore(
            settings.data_path(settings.records_file),
            region_institutions_path=settings.data_path(settings.region_institutions_file),
            region_schools_path=settings.data_path(settings.region_schools_file),
        ).load()
        cache = DiskCache(settings.cache_dir) if settings.cache_dir else InMemoryCache()
        if classifier is None:
            if settings.use_rules:
                classifier = RuleBasedClassifier()
            else:
                classifier = OracleClassifier.from_provider(
                    settings.provider,
                    settings.model,
                    temperature=settings.temperature,
                    max_tokens=settings.max_tokens,
                    max_concurrency=settings.max_concurrency,
                )
        logger.info("Loaded %d records; classifier=%s", len(store.records()), classifier.name)
        return cls(
            store,
            classifier,
            cache,
            batch_size=settings.batch_size,
            max_candidates=settings.max_candidates,
            broad_limit=settings.broad_limit,
            omitted_score=settings.omitted_score,
            failed_score=settings.failed_score,
            broad_score=settings.broad_score,
            cache_ttl_seconds=settings.cache_ttl_seconds,
            quality_threshold=settings.quality_threshold,
            max_attempts=settings.max_attempts,
        )

    def search(
        self,
        query: str,
        region_filter: None | str = None,
        options: SearchOptions | dict | None = None,
    ) -> list[RankedCandidate]:
        """Rank programs for `query`.

        Returns at most `max_results` candidates, each scored at least
        `min_relevance`. Raises `InvalidQueryError` for malformed requests.
        """
        return self.search_with_outcome(query, region_filter, options).candidates

    def search_with_outcome(
        self,
        query: str,
        region_filter: None | str = None,
        options: SearchOptions | dict | None = None,
    ) -> ReflectionOutcome:
        """Like `search`, also returning every reflection attempt."""
        if options is None:
            options = SearchOptions()
        elif isinstance(options, dict):
            options = SearchOptions.model_validate(options)
        _check_request(query, options)
        history = options.conversation_context

        region = region_filter
        if region is None and options.infer_region:
            region = detect_region(query)
            if region:
                logger.info("Inferred region %s from query", region)
        records = self.store.records_in_region(region) if region else list(self.store.records())
        if not records:
            logger.warning("No records available for region %s", region)

        intent = self.intents.extract(query, history)

        def attempt(current: SearchIntent) -> list[RankedCandidate]:
            return self._search_once(query, current, records, history, options)

        return self.reflection.run(
            intent,
            attempt,
            self.intents.broaden,
            target_count=min(options.max_results, TARGET_RESULTS),
        )

    def _search_once(
        self,
        query: str,
        intent: SearchIntent,
        records: list[Record],
        history: list[ConversationTurn],
        options: SearchOptions,
    ) -> list[RankedCandidate]:
        pool = filter_by_level(records, intent.level)
        prefiltered = self.prefilter.filter(pool, intent)
        if prefiltered.stage == "broad":
            # unranked pass-through, scored so the relevance floor still holds
            score = max(self.broad_score, options.min_relevance)
            return [
                RankedCandidate(
                    record=record,
                    score=score,
                    reasoning="No keyword match, included for broad evaluation",
                    match_type="broad",
                    campus=campus_name(record.institution_id),
                )
                for record in prefiltered.records[: options.max_results]
            ]

        ranked = self.ranker.rank(query, intent, prefiltered.records, history)
        kept = [candidate for candidate in ranked if candidate.score >= options.min_relevance]
        logger.info(
            "%d/%d candidates at or above relevance %d",
            len(kept), len(ranked), options.min_relevance,
        )
        return kept[: options.max_results]

    def verify_classification(
        self,
        records: typ.Sequence[Record | RankedCandidate | dict],
        query: str,
        history: None | str | list[ConversationTurn | dict] = None,
    ) -> list[VerifiedRecord]:
        """Attach a `CodeValidation` to every record, keeping order and count."""
        plain = [
            item.record if isinstance(item, RankedCandidate)
            else item if isinstance(item, Record)
            else Record.model_validate(item)
            for item in records
        ]
        return self.cip_verifier.verify(plain, query, history)

    def verify_career_codes(
        self,
        mappings: typ.Sequence[CareerCodeSet | dict],
        query: str,
        history: None | str | list[ConversationTurn | dict] = None,
        program_context: typ.Sequence[str] | None = None,
    ) -> list[CareerMapping]:
        """Split each mapping's occupation codes into kept and removed."""
        return self.soc_verifier.verify(mappings, query, history, program_context)
