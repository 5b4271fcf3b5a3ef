"""User settings stored alongside the practice data."""
from dataclasses import dataclass, fields

from prep_tutor.db import get_connection
from prep_tutor.retry import RetryPolicy


@dataclass
class EngineSettings:
    user_id: str = "guest"
    item_count: int = 10
    time_limit_seconds: int = 1800
    review_mode: str = "mixed"
    max_attempts: int = 3
    base_delay_ms: int = 1000
    max_delay_ms: int = 30000

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            base_delay_ms=self.base_delay_ms,
            max_delay_ms=self.max_delay_ms,
        )


def get_setting(db_path: str, key: str, default: str = None) -> str | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT value FROM user_settings WHERE key = ?", (key,)).fetchone()
    conn.close()
    return row["value"] if row else default


def set_setting(db_path: str, key: str, value: str) -> None:
    conn = get_connection(db_path)
    conn.execute(
        "INSERT INTO user_settings (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value=?",
        (key, value, value),
    )
    conn.commit()
    conn.close()


def load_settings(db_path: str) -> EngineSettings:
    """Build EngineSettings from stored values, falling back to defaults."""
    settings = EngineSettings()
    for f in fields(EngineSettings):
        raw = get_setting(db_path, f.name)
        if raw is None:
            continue
        default = getattr(settings, f.name)
        try:
            value = type(default)(raw)
        except ValueError:
            raise ValueError(f"Invalid value for setting {f.name!r}: {raw!r}") from None
        setattr(settings, f.name, value)
    return settings


def save_settings(db_path: str, settings: EngineSettings) -> None:
    for f in fields(EngineSettings):
        set_setting(db_path, f.name, str(getattr(settings, f.name)))
