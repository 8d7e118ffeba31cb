import pydantic

INSTITUTION_ALIASES = pydantic.AliasChoices(
    "institution_id",
    "iro_institution",
    "institution",
)
PROGRAM_CODE_ALIASES = pydantic.AliasChoices(
    "program_code",
    "program",
)
DESCRIPTION_ALIASES = pydantic.AliasChoices(
    "description",
    "program_desc",
    "PROGRAM_NAME",
    "title",
)
LEVEL_ALIASES = pydantic.AliasChoices(
    "level",
    "degree_level",
)
CLASSIFICATION_ALIASES = pydantic.AliasChoices(
    "classification_code",
    "cip_code",
    "CIP_CODE",
)
REGION_ALIASES = pydantic.AliasChoices(
    "region",
    "ISLAND",
)
INSTITUTIONS_ALIASES = pydantic.AliasChoices(
    "institutions",
    "CAMPUSES",
)
SCHOOLS_ALIASES = pydantic.AliasChoices(
    "schools",
    "HIGH_SCHOOLS",
)
