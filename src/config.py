"""Engine configuration loaded from environment variables and .env file."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings.

    Values are loaded from environment variables first,
    then from a .env file in the project root as fallback.

    PYTHON_MACROS runs the body of every `> object name python` block with
    the privileges of this process. Leave it on only for scripts you trust;
    turn it off to serve third-party scripts (their python objects are then
    skipped and <call> falls back to [ERR: Object Not Found]).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False

    # Parser / matcher behaviour
    STRICT: bool = True
    DEPTH: int = 50
    UTF8: bool = False
    UNICODE_PUNCTUATION: str = r"[.,!?;:]"
    HISTORY_SIZE: int = 9
    THAT_INHERITANCE: bool = True

    # User store
    SESSION_BACKEND: str = "memory"
    DATABASE_URL: str = "sqlite:///./sessions.db"

    # Object macros
    PYTHON_MACROS: bool = True


settings = Settings()
