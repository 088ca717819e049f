"""Application configuration using Pydantic settings."""

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Jira REST API
    jira_url: str = "https://jira.atlassian.com"
    jira_jql: str = ""  # Optional JQL filter, AND-ed with the time bound
    jira_username: str = ""
    jira_password: str = ""

    # Polling settings
    request_timeout_minutes: int = Field(default=1, gt=0)
    poll_interval_minutes: int = Field(default=10, gt=0)
    expected_update_period_in_days: int = Field(default=7, gt=0)

    # Logging
    log_level: str = "INFO"

    @model_validator(mode="after")
    def check_required(self) -> "Settings":
        if not self.jira_url.strip():
            raise ValueError("you need to specify your jira URL")
        if self.jira_username and not self.jira_password:
            raise ValueError("you need to specify password if user name is set")
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
