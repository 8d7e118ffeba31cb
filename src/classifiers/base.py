import abc

from agents.cip_agent import CIPValidationOutput
from agents.intent_agent import IntentOutput
from agents.rank_agent import RankingOutput
from agents.soc_agent import SOCValidationOutput
from core.conversation import ConversationContext
from records.models import Record
from tools.parsing import Parsed


class Classifier(abc.ABC):
    """Relevance and validation judgements used by the matching pipeline.

    Every method returns a `Parsed` variant and must not raise: failures are
    reported as `ParsedMalformed` so callers can apply their own fallback.
    """

    name: str = "classifier"

    @abc.abstractmethod
    def extract_intent(self, context: ConversationContext) -> Parsed[IntentOutput]:
        """Structured search intent for `context.query`."""

    @abc.abstractmethod
    def score_batches(
        self,
        topic: str,
        related_terms: list[str],
        batches: list[list[Record]],
        context: ConversationContext,
    ) -> list[Parsed[RankingOutput]]:
        """One ranking result per batch, in batch order."""

    @abc.abstractmethod
    def validate_cip(
        self, samples: dict[str, list[str]], context: ConversationContext
    ) -> Parsed[CIPValidationOutput]:
        """Validate education-program codes, given sample titles per code."""

    @abc.abstractmethod
    def validate_soc(
        self, codes: list[str], context: ConversationContext
    ) -> Parsed[SOCValidationOutput]:
        """Judge occupation codes for relevance to the conversation."""
