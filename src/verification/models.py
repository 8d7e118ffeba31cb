import typing as typ

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from records.models import Record


class CodeValidation(BaseModel):
    """Outcome of checking one education-program classification code."""

    original_code: str
    validated_code: str
    is_valid: bool
    corrected: bool = False
    family: str = "Unknown"
    category: str = "Unknown"
    confidence: int = Field(default=0, ge=0, le=100)
    reasoning: str = ""

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_correction(self) -> "CodeValidation":
        if self.corrected:
            if self.validated_code == self.original_code:
                raise ValueError("A corrected code must differ from the original code")
            if not self.reasoning.strip():
                raise ValueError("A corrected code needs a reasoning")
        return self


class VerifiedRecord(BaseModel):
    """A record with its (possibly corrected) classification code and validation."""

    record: Record
    validation: CodeValidation

    model_config = ConfigDict(frozen=True)


class CareerCodeValidation(BaseModel):
    """Relevance judgement for one occupation code."""

    original_code: str
    is_relevant: bool
    family: str = "Unknown"
    title: str = "Unknown"
    confidence: int = Field(default=0, ge=0, le=100)
    reasoning: str = ""

    model_config = ConfigDict(frozen=True)


class CareerCodeSet(BaseModel):
    """A classification code with the occupation codes linked to it."""

    cip_code: str = Field(validation_alias=AliasChoices("cip_code", "code", "cipCode"))
    soc_codes: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("soc_codes", "career_codes", "careerCodes", "socCodes"),
    )

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @field_validator("soc_codes", mode="before")
    @classmethod
    def _validate_codes(cls, v: typ.Any) -> list[str]:
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        return [str(code).strip() for code in v if str(code).strip()]


class CareerMapping(BaseModel):
    """Occupation codes of one classification code, split into kept and removed."""

    cip_code: str
    original_codes: list[str]
    kept_codes: list[str]
    removed_codes: list[str]
    validations: list[CareerCodeValidation] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)
