"""Project-level configuration and path helpers."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Union

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DATA_DIR = PROJECT_ROOT / "03_data"
LOGS_DIR = PROJECT_ROOT / "04_logs"
DEFAULT_DB_PATH = DATA_DIR / "autonomy.db"
DEFAULT_LOG_PATH = LOGS_DIR / "app.log"

DATA_DIR.mkdir(parents=True, exist_ok=True)
LOGS_DIR.mkdir(parents=True, exist_ok=True)


PathLike = Union[str, Path]


def resolve_db_path(env_value: PathLike | None = None) -> PathLike:
    """Resolve DATABASE_URL to an absolute path."""
    if not env_value:
        return DEFAULT_DB_PATH

    if str(env_value) == ":memory:":
        return ":memory:"

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value else default


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value else default


@dataclass
class Settings:
    """Runtime tunables. Every field can be overridden from the environment."""

    # Scheduler
    health_monitor_interval_s: float = 120.0
    adaptive_recalc_interval_s: float = 4 * 3600.0
    failure_alert_threshold: int = 3
    max_backoff_factor: int = 8
    emergency_failure_rate: float = 0.3
    emergency_resource_usage: float = 85.0

    # Message bus
    history_limit: int = 1000
    request_timeout_s: float = 30.0

    # Agents
    short_term_ttl_s: float = 3600.0
    episodic_capacity: int = 1000

    # Coordinator
    subtask_timeout_s: float = 120.0

    # Content generation
    llm_model: str = "claude-3-5-sonnet-20241022"
    generation_hourly_quota: int = 500

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables, falling back to defaults."""
        defaults = cls()
        return cls(
            health_monitor_interval_s=_env_float(
                "HEALTH_MONITOR_INTERVAL_S", defaults.health_monitor_interval_s
            ),
            adaptive_recalc_interval_s=_env_float(
                "ADAPTIVE_RECALC_INTERVAL_S", defaults.adaptive_recalc_interval_s
            ),
            failure_alert_threshold=_env_int(
                "FAILURE_ALERT_THRESHOLD", defaults.failure_alert_threshold
            ),
            max_backoff_factor=_env_int("MAX_BACKOFF_FACTOR", defaults.max_backoff_factor),
            emergency_failure_rate=_env_float(
                "EMERGENCY_FAILURE_RATE", defaults.emergency_failure_rate
            ),
            emergency_resource_usage=_env_float(
                "EMERGENCY_RESOURCE_USAGE", defaults.emergency_resource_usage
            ),
            history_limit=_env_int("BUS_HISTORY_LIMIT", defaults.history_limit),
            request_timeout_s=_env_float("BUS_REQUEST_TIMEOUT_S", defaults.request_timeout_s),
            short_term_ttl_s=_env_float("SHORT_TERM_TTL_S", defaults.short_term_ttl_s),
            episodic_capacity=_env_int("EPISODIC_CAPACITY", defaults.episodic_capacity),
            subtask_timeout_s=_env_float("SUBTASK_TIMEOUT_S", defaults.subtask_timeout_s),
            llm_model=os.getenv("LLM_MODEL", defaults.llm_model),
            generation_hourly_quota=_env_int(
                "GENERATION_HOURLY_QUOTA", defaults.generation_hourly_quota
            ),
        )
