import logging
import typing as typ

from agents.rank_agent import RankingOutput
from classifiers.base import Classifier
from core.conversation import ConversationContext, ConversationTurn
from records.models import Record
from records.regions import campus_name
from retrieval.models import RankedCandidate, SearchIntent
from tools.cache import Cache, cache_get_model, cache_set, fingerprint
from tools.parsing import Parsed, ParsedMalformed, ParsedOk

logger = logging.getLogger(__name__)


class SemanticRanker:
    """Scores prefiltered records in batches through a classifier.

    Scores follow a 1-10 rubric: 10 exact, 8-9 strong, 6-7 good, 4-5
    moderate, 1-3 weak. Candidates a classifier leaves out keep
    `omitted_score`; every candidate of a failed batch gets `failed_score`.
    """

    def __init__(
        self,
        classifier: Classifier,
        cache: Cache | None = None,
        *,
        batch_size: int = 20,
        max_candidates: int = 200,
        omitted_score: int = 7,
        failed_score: int = 5,
        cache_ttl_seconds: float = 3600.0,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.classifier = classifier
        self.cache = cache
        self.batch_size = batch_size
        self.max_candidates = max_candidates
        self.omitted_score = omitted_score
        self.failed_score = failed_score
        self.cache_ttl_seconds = cache_ttl_seconds

    def rank(
        self,
        query: str,
        intent: SearchIntent,
        records: typ.Sequence[Record],
        history: None | str | list[ConversationTurn | dict] = None,
    ) -> list[RankedCandidate]:
        if not records:
            return []
        if len(records) > self.max_candidates:
            logger.info("Capping %d candidates at %d", len(records), self.max_candidates)
        capped = list(records[: self.max_candidates])
        batches = [
            capped[start : start + self.batch_size]
            for start in range(0, len(capped), self.batch_size)
        ]
        context = ConversationContext.build(query, history)
        results = self._score(intent, batches, context)

        ranked: list[RankedCandidate] = []
        for batch_idx, (batch, result) in enumerate(zip(batches, results)):
            ranked.extend(self._merge(batch, result, batch_idx))
        # sorted() is stable, so ties keep candidate order
        ranked = sorted(ranked, key=lambda candidate: -candidate.score)
        logger.info(
            "Ranked %d candidates in %d batches (top score %d)",
            len(ranked), len(batches), ranked[0].score if ranked else 0,
        )
        return ranked

    def _batch_key(self, intent: SearchIntent, batch: list[Record], context: ConversationContext) -> str:
        return fingerprint(
            "rank", self.classifier.name, intent, [record.key for record in batch], context
        )

    def _score(
        self, intent: SearchIntent, batches: list[list[Record]], context: ConversationContext
    ) -> list[Parsed[RankingOutput]]:
        keys = [self._batch_key(intent, batch, context) for batch in batches]
        results: list[Parsed[RankingOutput] | None] = []
        for key in keys:
            cached = cache_get_model(self.cache, key, RankingOutput)
            results.append(ParsedOk(cached) if cached is not None else None)

        pending = [idx for idx, result in enumerate(results) if result is None]
        if pending:
            logger.debug("Scoring %d/%d batches (%d cached)", len(pending), len(batches), len(batches) - len(pending))
            fresh = self.classifier.score_batches(
                intent.primary_topic,
                intent.related_terms,
                [batches[idx] for idx in pending],
                context,
            )
            if len(fresh) != len(pending):
                logger.warning("Classifier returned %d results for %d batches", len(fresh), len(pending))
                fresh = [*fresh, *[ParsedMalformed("", "missing batch result")] * len(pending)][: len(pending)]
            for idx, result in zip(pending, fresh):
                results[idx] = result
                if isinstance(result, ParsedOk):
                    cache_set(self.cache, keys[idx], result.value.model_dump(mode="json"), self.cache_ttl_seconds)
        return typ.cast(list[Parsed[RankingOutput]], results)

    def _merge(
        self, batch: list[Record], result: Parsed[RankingOutput], batch_idx: int
    ) -> list[RankedCandidate]:
        if not isinstance(result, ParsedOk):
            logger.warning(
                "Ranking batch %d failed (%s), scoring %d candidates at %d",
                batch_idx, result.reason, len(batch), self.failed_score,
            )
            return [
                RankedCandidate(
                    record=record,
                    score=self.failed_score,
                    reasoning="Relevance could not be assessed",
                    match_type="broad",
                    campus=campus_name(record.institution_id),
                )
                for record in batch
            ]

        by_index = {}
        for item in result.value.rankings:
            if 1 <= item.index <= len(batch) and item.index not in by_index:
                by_index[item.index] = item
        if len(by_index) < len(batch):
            logger.debug(
                "Batch %d: %d candidates omitted, defaulting to %d",
                batch_idx, len(batch) - len(by_index), self.omitted_score,
            )

        merged = []
        for idx, record in enumerate(batch, start=1):
            item = by_index.get(idx)
            if item is None:
                candidate = RankedCandidate(
                    record=record,
                    score=self.omitted_score,
                    reasoning="Not individually scored",
                    match_type="related",
                    campus=campus_name(record.institution_id),
                )
            else:
                candidate = RankedCandidate(
                    record=record,
                    score=item.score,
                    reasoning=item.reasoning,
                    match_type=item.match_type,
                    campus=campus_name(record.institution_id),
                )
            merged.append(candidate)
        return merged
