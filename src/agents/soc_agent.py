import typing as typ

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from agents.base import BaseAgent


class SOCValidationItem(BaseModel):
    original_code: str = Field(validation_alias=AliasChoices("original_code", "originalCode"))
    is_relevant: bool = Field(
        default=True, validation_alias=AliasChoices("is_relevant", "isRelevant")
    )
    family: str = Field(default="Unknown", validation_alias=AliasChoices("family", "socFamily"))
    title: str = Field(default="Unknown", validation_alias=AliasChoices("title", "socTitle"))
    confidence: int = 0
    reasoning: str = ""

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("original_code", mode="before")
    @classmethod
    def _validate_code(cls, v: typ.Any) -> str:
        return str(v).strip() if v is not None else ""

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, v: typ.Any) -> int:
        try:
            return min(max(round(float(v)), 0), 100)
        except (TypeError, ValueError):
            return 0

    @field_validator("family", "title", "reasoning", mode="before")
    @classmethod
    def _validate_text(cls, v: typ.Any) -> str:
        return str(v).strip() if v else ""


class SOCValidationOutput(BaseModel):
    validations: list[SOCValidationItem] = Field(
        default_factory=list, validation_alias=AliasChoices("validations", "results")
    )

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _wrap_array(cls, data: typ.Any) -> typ.Any:
        if isinstance(data, list):
            return {"validations": data}
        return data


class SOCVerifyAgent(BaseAgent):
    output_schema = SOCValidationOutput

    def __init__(self, provider: str, model: str, **kwargs):
        super().__init__(provider, model, prompt_name="verify_soc", **kwargs)
