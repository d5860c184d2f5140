"""
PantherEyes Agent Configuration — pydantic-settings based.

All settings are read from environment variables or .env file.
Nothing is required at startup: without provider keys the agent runs with
deterministic planners only.
"""

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application-wide settings sourced from environment variables."""

    # ── Workspace ──
    panthereyes_root_dir: str = Field(
        default="",
        description="Default workspace root containing .panthereyes/ (empty = cwd)",
    )

    # ── Provider keys (only read by the environment key resolver) ──
    panthereyes_openai_api_key: str = Field(default="", description="OpenAI API key", repr=False)
    panthereyes_anthropic_api_key: str = Field(default="", description="Anthropic API key", repr=False)

    # ── LLM ──
    llm_enabled: bool = Field(
        default=False,
        description="Route chat-model calls through the LLM router (off = deterministic only)",
    )
    llm_primary_provider: str = Field(default="openai", description="Primary LLM provider id")
    llm_fallback_order: list[str] = Field(
        default=["claude"], description="Providers tried after the primary, in order"
    )
    llm_timeout_ms: int = Field(default=10_000, description="Per-provider request timeout (ms)")
    llm_key_scopes: list[str] = Field(
        default=["user", "project", "org"], description="Key scopes tried in order"
    )
    openai_model: str = Field(default="gpt-4.1-mini", description="OpenAI model identifier")
    openai_endpoint: str = Field(
        default="https://api.openai.com/v1/responses", description="OpenAI Responses API URL"
    )
    claude_model: str = Field(
        default="claude-3-5-sonnet-latest", description="Anthropic model identifier"
    )
    claude_endpoint: str = Field(
        default="https://api.anthropic.com/v1/messages", description="Anthropic Messages API URL"
    )
    anthropic_version: str = Field(default="2023-06-01", description="anthropic-version header")

    # ── Scan CLI ──
    scan_cli_command: list[str] = Field(
        default=["cargo", "run", "-p", "panthereyes-cli", "--"],
        description="Command prefix used to invoke the external scan CLI",
    )

    # ── Server ──
    port: int = Field(default=8787, description="Server port")
    host: str = Field(default="127.0.0.1", description="Server bind host")
    cors_origins: list[str] = Field(default=["*"], description="Allowed CORS origins")
    log_level: str = Field(default="INFO", description="Root log level")

    # ── Audit ──
    audit_log_path: str = Field(
        default="",
        description="JSON-lines file for LLM routing audit events (empty disables it)",
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    def provider_key_env(self) -> dict[str, str]:
        """Provider keys keyed by their environment variable names."""
        return {
            "PANTHEREYES_OPENAI_API_KEY": self.panthereyes_openai_api_key,
            "PANTHEREYES_ANTHROPIC_API_KEY": self.panthereyes_anthropic_api_key,
        }


# Singleton instance, imported by other modules
settings = Settings()
