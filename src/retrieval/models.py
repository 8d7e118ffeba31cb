import typing as typ

from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.types import IntentKind, MatchType
from records.models import Record

PrefilterStage = typ.Literal["terms", "topic_words", "broad"]


class SearchIntent(BaseModel):
    """Structured interpretation of a free-text query."""

    primary_topic: str = Field(min_length=1)
    related_terms: list[str] = Field(min_length=1)
    kind: IntentKind = "exact"
    level: str | None = None

    model_config = ConfigDict(frozen=True)

    @field_validator("primary_topic")
    @classmethod
    def _validate_topic(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("primary_topic cannot be blank")
        return v.strip()


class RankedCandidate(BaseModel):
    """A record with its relevance judgement."""

    record: Record
    score: int = Field(ge=1, le=10)
    reasoning: str = ""
    match_type: MatchType = "broad"
    campus: str = ""

    model_config = ConfigDict(frozen=True)


class PrefilterResult(BaseModel):
    """Records surviving the prefilter and the ladder stage that produced them."""

    records: list[Record] = Field(default_factory=list)
    stage: PrefilterStage = "terms"
