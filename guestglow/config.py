"""
GuestGlow - Configuration Management
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import List


class Settings(BaseSettings):
    """Application settings"""

    # FastAPI
    fastapi_env: str = "development"
    fastapi_host: str = "0.0.0.0"
    fastapi_port: int = 8000

    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: str = ""

    # Email provider (Resend)
    resend_api_key: str = ""
    resend_api_url: str = "https://api.resend.com"
    email_timeout_seconds: float = 30.0

    # LLM
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-2024-08-06"

    # Approval workflow
    public_base_url: str = "http://localhost:8000"
    approval_token_ttl_hours: int = 24
    approval_recipients: str = "gm@guest-glow.com"  # Comma-separated

    # SLA / escalation
    default_escalation_hours: float = 4.0
    system_fallback_email: str = "system-fallback@guest-glow.com"
    system_monitor_email: str = "gizzy@guest-glow.com"

    # Reports
    report_recipients: str = ""  # Comma-separated

    # Tenant defaults
    default_tenant_slug: str = "eusbett"
    default_hotel_name: str = "Eusbett Hotel"

    # Authentication
    allowed_api_keys: str = ""  # Comma-separated bearer tokens

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False
    )

    @property
    def supabase_admin_key(self) -> str:
        """Service role key, falling back to the anon key"""
        return self.supabase_service_role_key or self.supabase_key

    @property
    def approval_recipient_list(self) -> List[str]:
        return _split_csv(self.approval_recipients)

    @property
    def report_recipient_list(self) -> List[str]:
        return _split_csv(self.report_recipients)

    @property
    def allowed_api_key_list(self) -> List[str]:
        return _split_csv(self.allowed_api_keys)


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
