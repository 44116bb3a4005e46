"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache) — single instance per process
    - model / summarizer_model are "<provider>/<model>" strings

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - API keys default to None: a missing key surfaces as an error event, not a boot failure
"""

from functools import lru_cache

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from notecritic.core.domain_types import MAX_STEPS
from notecritic.core.user_input import DEFAULT_FEEDBACK_TEMPLATE

DEFAULT_SYSTEM_PROMPT = (
    "You are a thoughtful writing critic. Give concise, specific, constructive "
    "feedback on the user's notes and answer their follow-up questions."
)


class McpServer(BaseModel):
    """Remote MCP server the vendor calls directly; authorization_token is a static bearer token."""
    name: str = Field(min_length=1)
    url: str = Field(min_length=1)
    authorization_token: str | None = None
    allowed_tools: list[str] = Field(default_factory=list)


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = "sqlite+aiosqlite:///./notecritic.db"

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted Postgres URLs come as postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Models
    model: str = "anthropic/claude-sonnet-4-20250514"
    summarizer_model: str = "anthropic/claude-3-5-haiku-latest"

    # Vendors
    anthropic_api_key: str | None = None
    openai_api_key: str | None = None

    # Inference
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    feedback_prompt: str = DEFAULT_FEEDBACK_TEMPLATE
    max_tokens: int = 4096
    thinking_budget_tokens: int = 2048
    reasoning_effort: str = "medium"
    enabled_tools: list[str] = ["web_search", "web_browser"]
    # JSON list in MCP_SERVERS, e.g. [{"name": "notes", "url": "https://...", "allowed_tools": []}]
    mcp_servers: list[McpServer] = []
    max_steps: int = MAX_STEPS

    # Transport
    transport_max_retries: int = 3
    transport_timeout_seconds: int = 300
    transport_base_delay_ms: int = 1000
    transport_max_delay_ms: int = 60_000

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @property
    def thinking_enabled(self) -> bool:
        return self.thinking_budget_tokens > 0


@lru_cache
def get_settings() -> Settings:
    return Settings()
