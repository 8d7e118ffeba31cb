import typing as typ

import pydantic

from core.aliases import (
    CLASSIFICATION_ALIASES,
    DESCRIPTION_ALIASES,
    INSTITUTION_ALIASES,
    INSTITUTIONS_ALIASES,
    LEVEL_ALIASES,
    PROGRAM_CODE_ALIASES,
    REGION_ALIASES,
    SCHOOLS_ALIASES,
)

HIGH_SCHOOL_LEVELS = frozenset({"high school", "highschool", "hs", "pre-college"})


def _first_if_list(value: typ.Any) -> typ.Any:
    if isinstance(value, list):
        return value[0] if value else ""
    return value


class Record(pydantic.BaseModel):
    """An educational program entry."""

    institution_id: str = pydantic.Field(validation_alias=INSTITUTION_ALIASES)
    program_code: str = pydantic.Field(default="", validation_alias=PROGRAM_CODE_ALIASES)
    description: str = pydantic.Field(validation_alias=DESCRIPTION_ALIASES)
    level: str = pydantic.Field(default="", validation_alias=LEVEL_ALIASES)
    classification_code: str = pydantic.Field(
        default="", validation_alias=CLASSIFICATION_ALIASES
    )

    model_config = pydantic.ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    @pydantic.field_validator(
        "institution_id", "program_code", "description", "level", "classification_code",
        mode="before",
    )
    @classmethod
    def _validate_text(cls, value: typ.Any) -> str:
        value = _first_if_list(value)
        if value is None:
            return ""
        return str(value).strip()

    @pydantic.field_validator("institution_id", "description", mode="after")
    @classmethod
    def _validate_required(cls, value: str) -> str:
        if not value:
            raise ValueError("Field cannot be empty")
        return value

    @property
    def text(self) -> str:
        """Lower-cased description and program code used for term matching."""
        return f"{self.description} {self.program_code}".lower()

    @property
    def is_high_school(self) -> bool:
        return self.level.lower() in HIGH_SCHOOL_LEVELS

    @property
    def key(self) -> str:
        return f"{self.institution_id}|{self.program_code}|{self.description}"


class RegionEntry(pydantic.BaseModel):
    """One line of a region lookup table."""

    region: str = pydantic.Field(validation_alias=REGION_ALIASES)
    institutions: list[str] = pydantic.Field(
        default_factory=list, validation_alias=INSTITUTIONS_ALIASES
    )
    schools: list[str] = pydantic.Field(default_factory=list, validation_alias=SCHOOLS_ALIASES)

    model_config = pydantic.ConfigDict(populate_by_name=True, extra="ignore")

    @pydantic.field_validator("institutions", "schools", mode="before")
    @classmethod
    def _validate_names(cls, value: None | str | list[str]) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return [str(x).strip() for x in value if str(x).strip()]
