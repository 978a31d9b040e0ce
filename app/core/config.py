from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import make_url

DEFAULT_SQLITE_URL = "sqlite:///./slotbook.db"
DRIVER_NORMALIZATION = {
    # async -> sync
    "mysql+asyncmy": "mysql+pymysql",
    "sqlite+aiosqlite": "sqlite",
    # mysql connector flavors -> pymysql (default in requirements)
    "mysql+mysqlconnector": "mysql+pymysql",
    "mysql+mysqldb": "mysql+pymysql",
    "mysql": "mysql+pymysql",
}


class Settings(BaseSettings):
    db_host: str = Field(default="localhost", validation_alias=AliasChoices("DB_HOST"))
    db_port: int = Field(default=3306, validation_alias=AliasChoices("DB_PORT"))
    db_username: str | None = Field(default=None, validation_alias=AliasChoices("DB_USERNAME"))
    db_password: str | None = Field(default=None, validation_alias=AliasChoices("DB_PASSWORD"))
    db_name: str | None = Field(default="slotbook", validation_alias=AliasChoices("DB_NAME"))
    database_url: str | None = Field(default=None, validation_alias=AliasChoices("DATABASE_URL"))
    app_env: str | None = Field(default=None, validation_alias=AliasChoices("APP_ENV"))

    jwt_secret: str = Field(default="change-me", validation_alias=AliasChoices("JWT_SECRET"))
    jwt_algorithm: str = Field(default="HS256", validation_alias=AliasChoices("JWT_ALGORITHM"))
    jwt_expire_minutes: int = Field(default=24 * 60, validation_alias=AliasChoices("JWT_EXPIRE_MINUTES"))

    telegram_bot_token: str | None = Field(default=None, validation_alias=AliasChoices("TELEGRAM_BOT_TOKEN"))
    admin_telegram_chat_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("ADMIN_TELEGRAM_CHAT_ID"),
    )

    telegram_polling_enabled: bool = Field(default=True, validation_alias=AliasChoices("ENABLE_TELEGRAM_POLLING"))
    telegram_poll_timeout_seconds: int = Field(default=10, validation_alias=AliasChoices("TELEGRAM_POLL_TIMEOUT"))

    reminders_enabled: bool = Field(default=True, validation_alias=AliasChoices("ENABLE_REMINDERS"))
    reminder_interval_seconds: int = Field(default=60, validation_alias=AliasChoices("REMINDER_INTERVAL_SECONDS"))
    # Hour of the Moscow day at which the admin summary goes out.
    daily_summary_hour: int = Field(default=9, validation_alias=AliasChoices("DAILY_SUMMARY_HOUR"))

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


def get_db_url(settings: "Settings") -> str:
    app_env = (settings.app_env or "").strip().lower()
    if app_env in {"local", "dev", "development"}:
        return DEFAULT_SQLITE_URL

    if settings.database_url:
        return settings.database_url

    if settings.db_username and settings.db_password and settings.db_name:
        return (
            f"mysql+asyncmy://{settings.db_username}:"
            f"{settings.db_password}@{settings.db_host}:{settings.db_port}/"
            f"{settings.db_name}"
        )

    # Production without DB settings should fail loudly instead of writing to SQLite.
    if app_env in {"production", "prod", "staging"}:
        raise ValueError("APP_ENV is set to production/staging but DB configuration is missing")

    return DEFAULT_SQLITE_URL


def normalize_db_url(url: str) -> str:
    """
    Convert async driver URLs to sync equivalents so they can be used
    with the current synchronous SQLAlchemy engine/session setup.
    """
    url_obj = make_url(url)
    driver = url_obj.drivername
    if driver in DRIVER_NORMALIZATION:
        url_obj = url_obj.set(drivername=DRIVER_NORMALIZATION[driver])
    return url_obj.render_as_string(hide_password=False)


def telegram_configured(settings: "Settings") -> bool:
    token = (settings.telegram_bot_token or "").strip()
    return bool(token) and token != "YOUR_BOT_TOKEN_HERE"


settings = Settings()
