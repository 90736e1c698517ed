from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    app_name: str = "doctype-ui-compiler"
    api_host: str = "0.0.0.0"
    api_port: int = 8080

    frappe_url: str | None = None
    frappe_api_key: str | None = None
    frappe_api_secret: str | None = None
    metadata_timeout: float = 30.0

    # Directory of JSON/YAML schema dumps; takes precedence over frappe_url
    metadata_dir: str | None = None

    default_style_preset: str = "plain"
    default_sync_strategy: str = "respect-manual"
    target_language: str = "js"
    log_level: str = "INFO"

settings = Settings()
