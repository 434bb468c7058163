"""
LeadScout settings - YAML configuration for validation, fetching and search.

Settings live in `leadscout.yml` in the working directory (or any path given
with --settings). Every section is optional; a missing file means defaults.
API keys are never stored here: they come from the environment (.env).
"""

from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field

from .fetcher import FetcherConfig
from .validator import DEFAULT_USER_AGENT, ValidatorConfig

DEFAULT_SETTINGS_FILE = "leadscout.yml"

_DEFAULT_VALIDATOR = ValidatorConfig()


class ValidationSettings(BaseModel):
    """Deep-tier validation tuning."""

    model_config = ConfigDict(extra="forbid")

    timeout: float = Field(default=5.0, gt=0)
    max_handles_per_kind: int = Field(default=5, ge=0, description="Handles checked per social kind")
    max_websites: int = Field(default=3, ge=0, description="Websites checked / extracted per call")
    user_agent: str = Field(default=DEFAULT_USER_AGENT)

    # Platform markup markers; expect to update these as the sites change
    instagram_absent_markers: list[str] = Field(
        default_factory=lambda: list(_DEFAULT_VALIDATOR.instagram_absent_markers)
    )
    twitter_absent_markers: list[str] = Field(
        default_factory=lambda: list(_DEFAULT_VALIDATOR.twitter_absent_markers)
    )
    telegram_present_markers: list[str] = Field(
        default_factory=lambda: list(_DEFAULT_VALIDATOR.telegram_present_markers)
    )


class FetcherSettings(BaseModel):
    """Page fetching policy."""

    model_config = ConfigDict(extra="forbid")

    timeout: float = Field(default=30.0, gt=0)
    delay_between_requests: float = Field(default=1.0, ge=0, description="Seconds between hits to one domain")
    max_concurrent: int = Field(default=5, ge=1)
    cache_dir: str | None = Field(default=None, description="Cache fetched pages here if set")


class SearchSettings(BaseModel):
    """Search and research provider options."""

    model_config = ConfigDict(extra="forbid")

    results_per_query: int = Field(default=10, ge=1, le=20)
    research_model: str | None = Field(
        default=None, description="Research model; falls back to LEADSCOUT_RESEARCH_MODEL, then sonar"
    )


class Settings(BaseModel):
    """Top-level LeadScout configuration."""

    model_config = ConfigDict(extra="forbid")

    data_dir: str = Field(default="data", description="Where projects/queries/leads JSON lives")
    validation: ValidationSettings = Field(default_factory=ValidationSettings)
    fetcher: FetcherSettings = Field(default_factory=FetcherSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)

    def to_validator_config(self) -> ValidatorConfig:
        v = self.validation
        return ValidatorConfig(
            timeout=v.timeout,
            max_handles_per_kind=v.max_handles_per_kind,
            max_websites=v.max_websites,
            user_agent=v.user_agent,
            instagram_absent_markers=tuple(v.instagram_absent_markers),
            twitter_absent_markers=tuple(v.twitter_absent_markers),
            telegram_present_markers=tuple(v.telegram_present_markers),
        )

    def to_fetcher_config(self) -> FetcherConfig:
        f = self.fetcher
        return FetcherConfig(
            timeout=f.timeout,
            delay_between_requests=f.delay_between_requests,
            max_concurrent=f.max_concurrent,
            cache_dir=Path(f.cache_dir) if f.cache_dir else None,
        )


def get_settings_path() -> Path:
    """Default settings file in the working directory."""
    return Path.cwd() / DEFAULT_SETTINGS_FILE


def load_settings(path: Path | str | None = None) -> Settings:
    """Load settings from YAML.

    Args:
        path: Settings file; defaults to ./leadscout.yml.

    Returns:
        The loaded Settings (defaults if the file does not exist).

    Raises:
        pydantic.ValidationError: If the file has unknown or invalid fields.
        ValueError: If the file is not a YAML mapping.
    """
    path = Path(path) if path else get_settings_path()
    if not path.exists():
        return Settings()

    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if data is None:
        return Settings()
    if not isinstance(data, dict):
        raise ValueError(f"Settings file must contain a mapping: {path}")

    return Settings(**data)


def save_settings(settings: Settings, path: Path | str | None = None) -> Path:
    """Write settings to YAML and return the path written."""
    path = Path(path) if path else get_settings_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    data = settings.model_dump(mode="json")

    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False, allow_unicode=True)

    return path
