"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Directory API (console backend)
    directory_api_url: str = "http://localhost:7071"
    directory_api_token_env: str | None = "TENANTGUARD_DIRECTORY_TOKEN"
    directory_api_timeout: float = 30.0

    # Diagnostics
    concurrent_probes: bool = True

    # Remediation sessions
    session_idle_timeout: float = 900.0

    # External administration surfaces used when an automatic fix was already tried
    collaboration_admin_url: str = (
        "https://entra.microsoft.com/#view/Microsoft_AAD_IAM/CompanyRelationshipsMenuBlade/~/Settings"
    )
    sharing_admin_url: str = "https://admin.microsoft.com/sharepoint?page=sharing"
    voice_admin_url: str = "https://admin.teams.microsoft.com/phone-numbers"

    # CORS
    cors_allowed_origins: list[str] = ["http://localhost:3000"]

    # Server
    host: str = "0.0.0.0"
    port: int = 8090
    log_level: str = "info"
    json_logs: bool = False

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "TENANTGUARD_",
    }


settings = Settings()
