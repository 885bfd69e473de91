"""Environment-bound configuration objects.

This module provides Pydantic BaseSettings-based configuration loading from .env files.
All settings classes automatically load from environment variables with support for
multiple alias names (e.g., MODEL_SUPERVISOR_* and MODEL_REASON_* both work).

Example:
    from researchAgent.config.settings import get_settings

    settings = get_settings()  # Cached singleton
    max_rounds = settings.governance.max_researcher_iterations
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


load_dotenv()


class ModelRoutingSettings(BaseSettings):
    """Model identifiers and credentials for the two model slots.

    - supervisor: the decision model that emits ConductResearch / think_tool /
      ResearchComplete tool calls
    - researcher: the model used by the bundled researcher graph (research, then compress)
    """

    supervisor: str = Field(
        default="reasoner-pro",
        validation_alias=AliasChoices("MODEL_SUPERVISOR", "MODEL_SUPERVISOR_ID", "MODEL_REASON_ID"),
    )
    supervisor_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("MODEL_SUPERVISOR_API_KEY", "MODEL_REASON_API_KEY"),
    )
    supervisor_base_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("MODEL_SUPERVISOR_URL", "MODEL_REASON_URL"),
    )

    researcher: str = Field(
        default="base-quick",
        validation_alias=AliasChoices("MODEL_RESEARCHER", "MODEL_RESEARCHER_ID", "MODEL_BASE_ID"),
    )
    researcher_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("MODEL_RESEARCHER_API_KEY", "MODEL_BASE_API_KEY"),
    )
    researcher_base_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("MODEL_RESEARCHER_URL", "MODEL_BASE_URL"),
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


class GovernanceSettings(BaseSettings):
    """Supervisor loop limits.

    - max_researcher_iterations: rounds allowed before delegations are refused (default: 6)
    - max_concurrent_research_units: cap on delegates running at once (0 = unbounded)
    - strict_ledger: override ledger strictness (None = strict unless APP_ENV=prod)
    """

    max_researcher_iterations: int = Field(
        default=6,
        ge=1,
        le=50,
        validation_alias=AliasChoices("MAX_RESEARCHER_ITERATIONS", "MAX_RESEARCH_ROUNDS"),
    )
    max_concurrent_research_units: int = Field(
        default=0,
        ge=0,
        le=64,
        alias="MAX_CONCURRENT_RESEARCH_UNITS",
    )
    strict_ledger: Optional[bool] = Field(default=None, alias="STRICT_LEDGER")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


class ScopeSettings(BaseSettings):
    """Scope phase in front of the supervisor loop.

    - enabled: run clarify_with_user and write_research_brief before the loop
      (off: the request is used verbatim as the research brief)
    - allow_clarification: let the clarifier ask the user a question
    """

    enabled: bool = Field(default=True, alias="SCOPE_ENABLED")
    allow_clarification: bool = Field(default=True, alias="ALLOW_CLARIFICATION")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


class ObservabilitySettings(BaseSettings):
    """Tracing, logging, and event log configuration.

    - LangSmith tracing (LANGCHAIN_TRACING_V2, LANGCHAIN_PROJECT, etc.)
    - Logging settings (LOG_PROMPT_MAX_LENGTH)
    - Event log (EVENT_LOG_PATH for SQLite storage of emitted envelopes)
    """

    langsmith_project: Optional[str] = Field(default=None, alias="LANGCHAIN_PROJECT")
    langsmith_api_key: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("LANGCHAIN_API_KEY", "LANGSMITH_API_KEY")
    )
    langsmith_endpoint: Optional[str] = Field(default=None, alias="LANGCHAIN_ENDPOINT")
    tracing_enabled: bool = Field(default=False, alias="LANGCHAIN_TRACING_V2")

    log_prompt_max_length: int = Field(default=500, ge=100, le=5000, alias="LOG_PROMPT_MAX_LENGTH")

    # Empty / unset disables the event log
    event_log_path: Optional[str] = Field(default=None, alias="EVENT_LOG_PATH")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


class ViewerSettings(BaseSettings):
    """Execution viewer settings.

    flush_interval_ms: coalescing window of the batching scheduler (one frame at 60 fps).
    """

    flush_interval_ms: int = Field(default=16, ge=0, le=1000, alias="VIEWER_FLUSH_INTERVAL_MS")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def flush_interval(self) -> float:
        return self.flush_interval_ms / 1000.0


class Settings(BaseSettings):
    """Root application settings loaded from .env file.

    Hierarchical structure containing five nested settings groups:
    - models: Model routing and API credentials (ModelRoutingSettings)
    - governance: Supervisor loop limits (GovernanceSettings)
    - scope: Clarification and brief phase (ScopeSettings)
    - observability: Tracing, logging and event log (ObservabilitySettings)
    - viewer: Execution viewer batching (ViewerSettings)

    Use get_settings() to obtain a cached singleton instance.
    """

    environment: str = Field(default="dev", alias="APP_ENV")
    models: ModelRoutingSettings = Field(default_factory=ModelRoutingSettings)
    governance: GovernanceSettings = Field(default_factory=GovernanceSettings)
    scope: ScopeSettings = Field(default_factory=ScopeSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)
    viewer: ViewerSettings = Field(default_factory=ViewerSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
        validate_assignment=True,
        case_sensitive=False,
    )

    @property
    def ledger_is_strict(self) -> bool:
        """Duplicate ledger writes raise outside production, are ignored in production."""
        if self.governance.strict_ledger is not None:
            return self.governance.strict_ledger
        return self.environment.lower() not in {"prod", "production"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton Settings instance.

    Returns:
        Settings: Cached application settings instance
    """
    return Settings()
