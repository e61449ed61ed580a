from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', extra='ignore')

    app_name: str = 'CampusFlow'
    app_env: str = 'local'
    app_version: str = '1.0.0'
    app_timezone: str = 'Asia/Kolkata'
    database_url: str = 'sqlite:///./campusflow.db'
    app_base_url: str = 'http://127.0.0.1:8000'
    cors_origins: str = 'http://localhost:3000,http://localhost:8080'
    auth_secret: str = 'change-me'
    auth_session_expiry_hours: int = 12
    storage_dir: str = './storage'
    upload_max_bytes: int = 5 * 1024 * 1024
    db_slow_query_ms: int = 100
    metrics_slow_ms: int = 200


settings = Settings()
