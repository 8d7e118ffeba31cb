import pathlib

import pydantic
from pydantic_settings import BaseSettings, SettingsConfigDict


class MatchingSettings(BaseSettings):
    """Runtime configuration, read from `PATHWAYS_*` environment variables or `.env`."""

    provider: str = pydantic.Field(default="openai", description="Chat model provider.")
    model: str = pydantic.Field(default="gpt-4o-mini", description="Chat model name.")
    temperature: float = pydantic.Field(default=0.0, ge=0.0, le=2.0)
    max_tokens: int = pydantic.Field(default=4096, ge=1)
    use_rules: bool = pydantic.Field(
        default=False, description="Use the rule-based classifier instead of a chat model."
    )

    data_dir: pathlib.Path = pydantic.Field(default=pathlib.Path("data"))
    records_file: str = pydantic.Field(default="programs.jsonl")
    region_institutions_file: None | str = pydantic.Field(default="region_institutions.jsonl")
    region_schools_file: None | str = pydantic.Field(default="region_schools.jsonl")

    batch_size: int = pydantic.Field(default=20, ge=1, description="Candidates per ranking call.")
    max_candidates: int = pydantic.Field(default=200, ge=1, description="Ranking input cap.")
    max_concurrency: int = pydantic.Field(default=4, ge=1)
    broad_limit: int = pydantic.Field(
        default=100, ge=1, description="Records passed through when nothing matches."
    )
    omitted_score: int = pydantic.Field(default=7, ge=1, le=10)
    failed_score: int = pydantic.Field(default=5, ge=1, le=10)
    broad_score: int = pydantic.Field(default=3, ge=1, le=10)

    cache_ttl_seconds: float = pydantic.Field(default=3600.0, gt=0)
    cache_dir: None | pathlib.Path = pydantic.Field(
        default=None, description="Directory for the disk cache; in-memory when unset."
    )

    quality_threshold: float = pydantic.Field(default=5.0, ge=0.0, le=10.0)
    max_attempts: int = pydantic.Field(default=3, ge=1)

    model_config = SettingsConfigDict(
        env_prefix="PATHWAYS_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    def data_path(self, name: None | str) -> None | pathlib.Path:
        if not name:
            return None
        return self.data_dir.expanduser() / name
