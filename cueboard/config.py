from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    supabase_url: str
    supabase_service_role_key: str
    supabase_jwt_secret: str
    jwt_algorithm: str = "HS256"
    jwt_audience: str = "authenticated"
    auth_cookie_name: str | None = None  # defaults to sb-<project-ref>-auth-token
    company_cookie_name: str = "cueboard_company_id"
    company_cookie_max_age_seconds: int = 60 * 60 * 24 * 30
    company_cookie_secure: bool = True
    cors_allow_origins: list[str] = ["http://localhost:3000"]
    observability_export_url: str | None = None
    observability_export_bearer_token: str | None = None
    observability_export_timeout_seconds: float = 3.0

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
