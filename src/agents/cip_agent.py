import typing as typ

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from agents.base import BaseAgent


class CIPValidationItem(BaseModel):
    original_code: str = Field(validation_alias=AliasChoices("original_code", "originalCode"))
    validated_code: str = Field(
        default="", validation_alias=AliasChoices("validated_code", "validatedCode")
    )
    is_valid: bool = Field(default=False, validation_alias=AliasChoices("is_valid", "isValid"))
    corrected: bool = False
    family: str = Field(default="Unknown", validation_alias=AliasChoices("family", "cipFamily"))
    category: str = Field(
        default="Unknown", validation_alias=AliasChoices("category", "cipCategory")
    )
    confidence: int = 0
    reasoning: str = ""

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("original_code", "validated_code", mode="before")
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

    @field_validator("family", "category", "reasoning", mode="before")
    @classmethod
    def _validate_text(cls, v: typ.Any) -> str:
        return str(v).strip() if v else ""


class CIPValidationOutput(BaseModel):
    validations: list[CIPValidationItem] = Field(
        default_factory=list, validation_alias=AliasChoices("validations", "results")
    )

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _wrap_array(cls, data: typ.Any) -> typ.Any:
        if isinstance(data, list):
            return {"validations": data}
        return data


class CIPVerifyAgent(BaseAgent):
    output_schema = CIPValidationOutput

    def __init__(self, provider: str, model: str, **kwargs):
        super().__init__(provider, model, prompt_name="verify_cip", **kwargs)
