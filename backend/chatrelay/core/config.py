from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "Chat Relay"
    debug: bool = False
    environment: str = "development"  # development | production

    # Storage
    storage_backend: str = "database"  # database | memory
    database_url: str = f"sqlite:///{Path(__file__).resolve().parent.parent.parent / 'chatrelay.db'}"

    # Sessions
    session_secret: str = "change-me-chat-relay-session-secret"
    session_ttl_seconds: int = 24 * 60 * 60
    session_cookie_name: str = "sessionId"
    bcrypt_rounds: int = 12

    # Admin
    admin_password: str = ""
    diagnostics_enabled: bool = True

    # Relay
    relay_default_url: str = "http://localhost:11434"
    relay_default_model: str = "llama2:7b"
    relay_timeout_seconds: float = 30.0
    relay_history_limit: int = 5

    # Activity log
    log_capacity: int = 1000

    # Server
    host: str = "0.0.0.0"
    port: int = 5000
    cors_origins: list[str] = ["http://localhost:5000"]

    model_config = {
        "env_file": str(Path(__file__).resolve().parent.parent.parent / ".env"),
        "env_prefix": "CHATRELAY_",
    }

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


settings = Settings()
