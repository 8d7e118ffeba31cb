import typing as typ

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from agents.base import BaseAgent
from core.types import INTENT_KINDS, IntentKind, normalize_level


class IntentOutput(BaseModel):
    primary_topic: str = Field(
        default="",
        validation_alias=AliasChoices("primary_topic", "primaryTopic", "primaryField"),
        description="Main field of study the user is asking about",
    )
    related_terms: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("related_terms", "relatedTerms", "relatedFields"),
        description="Synonyms, abbreviations and specializations",
    )
    kind: IntentKind = Field(
        default="exact", validation_alias=AliasChoices("kind", "intentType", "intent_type")
    )
    level: str | None = Field(default=None, validation_alias=AliasChoices("level", "degreeLevel"))

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("primary_topic", mode="before")
    @classmethod
    def _validate_topic(cls, v: typ.Any) -> str:
        return v.strip() if isinstance(v, str) else ""

    @field_validator("related_terms", mode="before")
    @classmethod
    def _validate_terms(cls, v: typ.Any) -> list[str]:
        if isinstance(v, str):
            v = [v]
        if not isinstance(v, list):
            return []
        return [str(x).strip() for x in v if isinstance(x, str) and x.strip()]

    @field_validator("kind", mode="before")
    @classmethod
    def _validate_kind(cls, v: typ.Any) -> str:
        value = str(v or "").strip().lower()
        return value if value in INTENT_KINDS else "exact"

    @field_validator("level", mode="before")
    @classmethod
    def _validate_level(cls, v: typ.Any) -> str | None:
        return normalize_level(v)


class IntentAgent(BaseAgent):
    output_schema = IntentOutput

    def __init__(self, provider: str, model: str, **kwargs):
        super().__init__(provider, model, prompt_name="extract_intent", **kwargs)
