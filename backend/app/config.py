from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Redis (exchange-rate cache)
    redis_url: str = "redis://localhost:6379/0"

    # Anthropic
    anthropic_api_key: str = ""

    # OpenAI
    openai_api_key: str = ""

    # LLM models
    llm_model_primary: str = "gpt-4o-mini"
    llm_model_fallback: str = "claude-sonnet-4-5-20250929"

    # Exchange rates
    exchange_rate_api_url: str = "https://open.er-api.com/v6"
    exchange_rate_timeout_seconds: float = 10.0
    exchange_rate_cache_ttl: int = 3600  # 1 hour

    # Reconciliation
    reconciliation_threshold: float = 0.04
    reconciliation_risk_floor: float = 0.01  # one minor currency unit
    reconciliation_use_llm: bool = False

    # CORS
    cors_origins: str = "http://localhost:3000"

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",")]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
