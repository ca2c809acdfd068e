"""Application settings."""
from typing import List, Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Messenger settings, read from the environment or a .env file."""

    # Any SQLAlchemy URL; production targets PostgreSQL
    DATABASE_URL: str = "sqlite:///./messenger.db"
    DATABASE_ECHO: bool = False

    # Logs share stdout with the console menus
    LOG_LEVEL: str = "WARNING"

    PASSWORD_SCHEMES: List[str] = ["pbkdf2_sha256"]

    # What happens to a chat whose init_sender deletes their account
    INIT_SENDER_CHAT_POLICY: Literal["reassign", "delete"] = "reassign"

    MESSAGE_PAGE_SIZE: int = 10

    # Chats older than this without a message are removed when a console starts
    STALE_CHAT_MINUTES: int = 60

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="MESSENGER_",
        extra="ignore",
    )


settings = Settings()
