"""
Configuration Settings.

This module defines the application configuration using Pydantic's BaseSettings.
Values are bound from environment variables and the ``.env`` file; every field
is addressed by its upper-case alias in the environment and by its attribute
name in code.
"""

from typing import List, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DENIED_ARGUMENT_PATTERNS: List[str] = [r"rm\s+-rf", "mkfs", "shutdown", "reboot"]

# =====================================================================
# Grouped Configuration Models
# =====================================================================


class LogfireConfig(BaseModel):
    """Pydantic Logfire monitoring configuration."""

    enabled: bool = Field(default=False, alias="LOGFIRE_ENABLED", description="Enable Logfire tracing")
    token: Optional[str] = Field(default=None, alias="LOGFIRE_TOKEN", description="Logfire write token")
    service_name: str = Field(
        default="autopilot-ai", alias="LOGFIRE_SERVICE_NAME", description="Service name reported to Logfire"
    )
    environment: str = Field(
        default="development", alias="LOGFIRE_ENVIRONMENT", description="Deployment environment label"
    )

    model_config = {"populate_by_name": True}


class PolicySettings(BaseModel):
    """Capability policy configuration."""

    denied_tools: List[str] = Field(default_factory=list, alias="AUTOPILOT_AI_DENIED_TOOLS")
    denied_argument_patterns: List[str] = Field(
        default_factory=lambda: list(DEFAULT_DENIED_ARGUMENT_PATTERNS),
        alias="AUTOPILOT_AI_DENIED_ARGUMENT_PATTERNS",
    )

    model_config = {"populate_by_name": True}


# =====================================================================
# Main Settings Class
# =====================================================================


class Settings(BaseSettings):
    """
    Application settings model.

    All properties are automatically bound from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
        populate_by_name=True,
    )

    # =====================================================================
    # Logging
    # =====================================================================
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        alias="AUTOPILOT_AI_LOG_LEVEL",
    )
    log_to_file: bool = Field(
        default=False,
        description="Also write logs under the log directory",
        alias="AUTOPILOT_AI_LOG_TO_FILE",
    )
    log_dir: str = Field(default="logs", description="Directory for log files", alias="AUTOPILOT_AI_LOG_DIR")

    # =====================================================================
    # Persistence
    # =====================================================================
    database_url: str = Field(
        default="sqlite+aiosqlite:///autopilot_ai.db",
        description="Async SQLAlchemy URL for messages, tasks, plans and costs",
        alias="AUTOPILOT_AI_DATABASE_URL",
    )

    # =====================================================================
    # Reasoning
    # =====================================================================
    model: str = Field(
        default="openai:gpt-4o",
        description="pydantic-ai model identifier used for planning and step execution",
        alias="AUTOPILOT_AI_MODEL",
    )
    prompts_dir: Optional[str] = Field(
        default=None,
        description="Optional directory of markdown system prompts",
        alias="AUTOPILOT_AI_PROMPTS_DIR",
    )
    scratchpad_dir: str = Field(
        default="logs",
        description="Directory holding per-task scratchpad files",
        alias="AUTOPILOT_AI_SCRATCHPAD_DIR",
    )

    # =====================================================================
    # Policy
    # =====================================================================
    denied_tools: List[str] = Field(default_factory=list, alias="AUTOPILOT_AI_DENIED_TOOLS")
    denied_argument_patterns: List[str] = Field(
        default_factory=lambda: list(DEFAULT_DENIED_ARGUMENT_PATTERNS),
        alias="AUTOPILOT_AI_DENIED_ARGUMENT_PATTERNS",
    )

    # =====================================================================
    # Monitoring
    # =====================================================================
    logfire_enabled: bool = Field(default=False, alias="LOGFIRE_ENABLED")
    logfire_token: Optional[str] = Field(default=None, alias="LOGFIRE_TOKEN")
    logfire_service_name: str = Field(default="autopilot-ai", alias="LOGFIRE_SERVICE_NAME")
    logfire_environment: str = Field(default="development", alias="LOGFIRE_ENVIRONMENT")

    # =====================================================================
    # Computed Properties (Grouped Configurations)
    # =====================================================================

    @property
    def logfire(self) -> LogfireConfig:
        """Get Logfire configuration from environment variables."""
        return LogfireConfig.model_validate(self.model_dump(by_alias=True))

    @property
    def policy(self) -> PolicySettings:
        """Get capability policy configuration from environment variables."""
        return PolicySettings.model_validate(self.model_dump(by_alias=True))


settings = Settings()
