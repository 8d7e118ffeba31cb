import typing as typ

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from agents.base import BaseAgent
from core.types import MATCH_TYPES, MatchType


class RankingItem(BaseModel):
    index: int = Field(description="1-based position of the candidate in the batch")
    score: int = Field(default=5, ge=1, le=10)
    reasoning: str = "No reasoning provided"
    match_type: MatchType = Field(
        default="broad", validation_alias=AliasChoices("match_type", "matchType")
    )

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("score", mode="before")
    @classmethod
    def _clamp_score(cls, v: typ.Any) -> int:
        try:
            score = round(float(v))
        except (TypeError, ValueError):
            return 5
        return min(max(score, 1), 10)

    @field_validator("reasoning", mode="before")
    @classmethod
    def _validate_reasoning(cls, v: typ.Any) -> str:
        return str(v).strip() if v else "No reasoning provided"

    @field_validator("match_type", mode="before")
    @classmethod
    def _validate_match_type(cls, v: typ.Any) -> str:
        value = str(v or "").strip().lower()
        return value if value in MATCH_TYPES else "broad"


class RankingOutput(BaseModel):
    rankings: list[RankingItem] = Field(
        default_factory=list, validation_alias=AliasChoices("rankings", "results", "scores")
    )

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _wrap_array(cls, data: typ.Any) -> typ.Any:
        if isinstance(data, list):
            return {"rankings": data}
        return data

    @field_validator("rankings", mode="before")
    @classmethod
    def _drop_unindexed(cls, v: typ.Any) -> list[typ.Any]:
        if not isinstance(v, list):
            raise ValueError("rankings must be a list")
        return [item for item in v if isinstance(item, RankingItem) or _has_int_index(item)]


def _has_int_index(item: typ.Any) -> bool:
    """Items whose index is missing or not an integer are dropped, not fatal."""
    if not isinstance(item, dict) or isinstance(item.get("index"), bool):
        return False
    try:
        return float(item["index"]).is_integer()
    except (KeyError, TypeError, ValueError):
        return False


class RankAgent(BaseAgent):
    output_schema = RankingOutput

    def __init__(self, provider: str, model: str, **kwargs):
        super().__init__(provider, model, prompt_name="rank_candidates", **kwargs)
