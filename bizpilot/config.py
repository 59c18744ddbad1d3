# bizpilot/config.py
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    app_env: Literal["dev", "staging", "prod"] = "dev"
    log_level: str = "INFO"

    # AI gateway (chat-completion endpoint)
    # LOVABLE_API_KEY is the name the hosted dashboard deployment already uses.
    ai_gateway_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("ai_gateway_api_key", "lovable_api_key"),
    )
    ai_gateway_url: str = "https://ai.gateway.lovable.dev/v1/chat/completions"
    ai_model: str = "google/gemini-3-flash-preview"
    ai_timeout_seconds: float = 30.0
    ai_max_history_messages: int = 20  # Older client-supplied turns are dropped

    # Security
    allowed_origins: list[str] = ["*"]

    # Monitoring & Metrics
    enable_metrics: bool = True
    metrics_token: str | None = None  # Optional token for /metrics (if not set, uses internal network check)

    # Internal Network Access (for /metrics when no token)
    # Comma-separated CIDR ranges, e.g. "172.16.0.0/12,10.0.0.0/8"
    internal_networks: str = "10.0.0.0/8,172.16.0.0/12,192.168.0.0/16,127.0.0.0/8,::1/128"
    # Only set to true if behind a trusted reverse proxy
    trust_proxy_headers: bool = False

    # Feature Flags
    enable_request_logging: bool = True

    @property
    def is_production(self) -> bool:
        return self.app_env == "prod"

    @property
    def is_staging(self) -> bool:
        return self.app_env == "staging"

    @property
    def ai_gateway_configured(self) -> bool:
        return bool(self.ai_gateway_api_key)

    def validate_for_production(self) -> list[str]:
        """Return settings problems that must block a production start"""
        if not self.is_production:
            return []

        problems = []
        if self.log_level.upper() == "DEBUG":
            problems.append("log_level=DEBUG")
        if self.ai_timeout_seconds <= 0:
            problems.append("ai_timeout_seconds must be positive")

        return problems


def warn_on_risky_config(s: "Settings") -> list[str]:
    warnings: list[str] = []

    # --- AI gateway ---
    if not s.ai_gateway_configured:
        warnings.append(
            "AI_GATEWAY_API_KEY (or LOVABLE_API_KEY) is not set: every AI request will fail with 500."
        )
    if not s.ai_gateway_url.startswith("https://"):
        warnings.append(f"ai_gateway_url is not HTTPS ({s.ai_gateway_url}): the bearer credential travels in clear text.")

    # --- CORS ---
    if s.is_production and s.allowed_origins == ["*"]:
        warnings.append("prod: allowed_origins=['*'] (any site can call the AI endpoints from a browser).")

    # --- Proxy headers trust ---
    if s.trust_proxy_headers:
        warnings.append(
            "trust_proxy_headers=True: ensure you are behind a trusted reverse proxy, "
            "otherwise X-Forwarded-For spoofing is possible."
        )

    # --- Metrics exposure ---
    if s.enable_metrics and not s.metrics_token:
        warnings.append(
            "enable_metrics=True but metrics_token is not set: metrics protection relies on internal_networks."
        )
    if not s.internal_networks.strip():
        warnings.append("internal_networks is empty: internal-only protection for metrics won't work.")

    return warnings


def validate_or_warn(s: "Settings") -> None:
    """
    In prod: enforce blocking settings problems (hard fail).
    In all envs: warn about risky settings.
    """
    problems = s.validate_for_production()

    if problems:
        raise RuntimeError(f"Invalid settings for production: {', '.join(problems)}")

    # Logging is not configured yet at import time.
    for msg in warn_on_risky_config(s):
        print(f"[WARN][config] {msg}")


settings = Settings()
validate_or_warn(settings)
