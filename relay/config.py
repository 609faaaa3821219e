from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite:///./relay.db"
    debug: bool = False
    log_level: str = "INFO"

    # "sql" or "redis"
    storage_backend: str = "sql"
    redis_url: str = "redis://localhost:6379/0"
    redis_socket_timeout_seconds: float = 2.0

    telegram_bot_token: str = ""
    telegram_admin_group_id: str = ""

    whatsapp_verify_token: str = ""
    whatsapp_access_token: str = ""
    whatsapp_phone_number_id: str = ""
    whatsapp_api_version: str = "v19.0"

    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash"

    http_timeout_seconds: float = 30.0
    display_timezone: str = "Asia/Jakarta"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
