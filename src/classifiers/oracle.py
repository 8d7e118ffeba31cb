import logging

from langchain_core.language_models.chat_models import BaseChatModel

from agents.base import get_model
from agents.cip_agent import CIPValidationOutput, CIPVerifyAgent
from agents.intent_agent import IntentAgent, IntentOutput
from agents.rank_agent import RankAgent, RankingOutput
from agents.soc_agent import SOCValidationOutput, SOCVerifyAgent
from classifiers.base import Classifier
from core.conversation import ConversationContext
from records.models import Record
from tools.parsing import Parsed, ParsedMalformed

logger = logging.getLogger(__name__)


def _failed(exc: Exception) -> ParsedMalformed:
    return ParsedMalformed(raw_text="", reason=f"{type(exc).__name__}: {exc}")


def _candidate_line(record: Record) -> str:
    level = record.level or "Unknown level"
    code = record.classification_code or "N/A"
    return f"{record.description} ({level}, CIP: {code})"


class OracleClassifier(Classifier):
    """Classifier backed by chat-model agents."""

    name = "oracle"

    def __init__(
        self,
        intent_agent: IntentAgent,
        rank_agent: RankAgent,
        cip_agent: CIPVerifyAgent,
        soc_agent: SOCVerifyAgent,
        *,
        max_concurrency: int = 4,
    ):
        self.intent_agent = intent_agent
        self.rank_agent = rank_agent
        self.cip_agent = cip_agent
        self.soc_agent = soc_agent
        self.max_concurrency = max_concurrency

    @classmethod
    def from_provider(
        cls,
        provider: str,
        model: str,
        *,
        temperature: float = 0.0,
        max_tokens: int = 4096,
        max_concurrency: int = 4,
        llm: BaseChatModel | None = None,
    ) -> "OracleClassifier":
        """Build all four agents on one shared chat model."""
        llm = llm or get_model(provider, model, temperature=temperature, max_tokens=max_tokens)
        return cls(
            IntentAgent(provider, model, llm=llm),
            RankAgent(provider, model, llm=llm),
            CIPVerifyAgent(provider, model, llm=llm),
            SOCVerifyAgent(provider, model, llm=llm),
            max_concurrency=max_concurrency,
        )

    def extract_intent(self, context: ConversationContext) -> Parsed[IntentOutput]:
        try:
            return self.intent_agent.run_single(query=context.query, context=context.render())
        except Exception as exc:
            logger.warning("Intent extraction call failed: %s", exc)
            return _failed(exc)

    def score_batches(
        self,
        topic: str,
        related_terms: list[str],
        batches: list[list[Record]],
        context: ConversationContext,
    ) -> list[Parsed[RankingOutput]]:
        rendered_context = context.render()
        inputs = [
            {
                "query": context.query,
                "topic": topic,
                "related_terms": related_terms,
                "context": rendered_context,
                "candidates": [_candidate_line(record) for record in batch],
            }
            for batch in batches
        ]
        try:
            return self.rank_agent.run_batch(inputs, max_concurrency=self.max_concurrency)
        except Exception as exc:
            logger.warning("Ranking batch dispatch failed: %s", exc)
            return [_failed(exc) for _ in batches]

    def validate_cip(
        self, samples: dict[str, list[str]], context: ConversationContext
    ) -> Parsed[CIPValidationOutput]:
        codes = [{"code": code, "samples": titles} for code, titles in samples.items()]
        try:
            return self.cip_agent.run_single(context=context.render(), codes=codes)
        except Exception as exc:
            logger.warning("CIP validation call failed: %s", exc)
            return _failed(exc)

    def validate_soc(
        self, codes: list[str], context: ConversationContext
    ) -> Parsed[SOCValidationOutput]:
        try:
            return self.soc_agent.run_single(context=context.render(), codes=codes)
        except Exception as exc:
            logger.warning("SOC validation call failed: %s", exc)
            return _failed(exc)
