from pydantic_settings import BaseSettings

from stakeholder.errors import ConfigurationError


class Settings(BaseSettings):
    # Anthropic (key required before serving)
    anthropic_api_key: str = ""
    anthropic_base_url: str = ""
    research_model: str = "claude-sonnet-4-5-20250929"
    synthesis_model: str = "claude-haiku-4-5-20251001"
    research_max_tokens: int = 4000
    synthesis_max_tokens: int = 4000

    # Research stage
    research_web_search_enabled: bool = True
    research_web_search_max_uses: int = 5
    research_max_chars: int = 12000  # 0 keeps the full research text

    # Retry policy per call site
    research_retry_mode: str = "exponential"  # exponential | fixed
    research_max_attempts: int = 5
    research_retry_delay_seconds: float = 3.0
    synthesis_retry_mode: str = "exponential"  # exponential | fixed
    synthesis_max_attempts: int = 5
    synthesis_retry_delay_seconds: float = 3.0

    # Pipeline
    run_timeout_seconds: float = 300.0
    raw_excerpt_chars: int = 300
    max_fallback_sources: int = 25
    sse_ping_seconds: int = 15

    # App
    cors_origins: str = "*"
    host: str = "0.0.0.0"
    port: int = 3000
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"
    log_dir: str = "logs"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def require_api_key(self) -> str:
        key = self.anthropic_api_key.strip()
        if not key:
            raise ConfigurationError("ANTHROPIC_API_KEY is not set.")
        return key


settings = Settings()
