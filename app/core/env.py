import os


def get_app_env() -> str:
    """Return current APP_ENV value or empty string when unset."""
    return os.getenv("APP_ENV", "") or ""


def is_test_env() -> bool:
    """True when running in test mode (APP_ENV=test)."""
    return get_app_env().lower() == "test"


def background_jobs_enabled() -> bool:
    """Reminder jobs stay off under tests and when DISABLE_BACKGROUND_JOBS is set."""
    if is_test_env():
        return False
    return os.getenv("DISABLE_BACKGROUND_JOBS", "").lower() not in {"1", "true", "yes"}
