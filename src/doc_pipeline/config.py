"""Worker configuration from environment variables."""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from core.errors import ConfigurationError

REQUIRED_WORKER_VARIABLES = ("QUEUE_URL", "TABLE_NAME", "REGION")


def _int_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e


def _float_env(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e


@dataclass
class WorkerConfig:
    """Document worker configuration.

    Resolved once at process start and passed to each component at
    construction. Load from environment using WorkerConfig.from_env().
    All timing values in seconds.
    """

    # Required
    queue_url: str
    table_name: str
    region: str

    # Documents
    document_bucket: Optional[str] = None  # used when a message omits its bucket
    document_suffix: str = ".pdf"

    # Consumption loop
    wait_time_seconds: int = 10  # long-poll wait
    poll_interval_seconds: float = 5.0  # pause between polls
    visibility_timeout_seconds: Optional[int] = None  # None = queue default

    # Dead-letter policy
    max_receive_count: int = 5
    dead_letter_queue_url: Optional[str] = None

    def __post_init__(self) -> None:
        if not 0 <= self.wait_time_seconds <= 20:
            raise ConfigurationError(
                f"wait_time_seconds must be between 0 and 20, got {self.wait_time_seconds}"
            )
        if self.poll_interval_seconds < 0:
            raise ConfigurationError("poll_interval_seconds must be non-negative")
        if self.max_receive_count < 1:
            raise ConfigurationError("max_receive_count must be at least 1")

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "WorkerConfig":
        """Load configuration from environment variables.

        Required environment variables:
            QUEUE_URL: URL of the job queue
            TABLE_NAME: Name of the result table
            REGION: AWS region (AWS_REGION is accepted as a fallback)

        Optional environment variables (with defaults):
            DOCUMENT_BUCKET: Bucket for messages without one (unset)
            DOCUMENT_SUFFIX: .pdf (default)
            WAIT_TIME_SECONDS: 10 (default)
            POLL_INTERVAL_SECONDS: 5 (default)
            VISIBILITY_TIMEOUT_SECONDS: queue default
            MAX_RECEIVE_COUNT: 5 (default)
            DEAD_LETTER_QUEUE_URL: unset (retry indefinitely)

        Raises:
            ConfigurationError: If required variables are missing or malformed
        """
        env = os.environ if env is None else env

        values = {
            "QUEUE_URL": env.get("QUEUE_URL", "").strip(),
            "TABLE_NAME": env.get("TABLE_NAME", "").strip(),
            "REGION": (env.get("REGION") or env.get("AWS_REGION") or "").strip(),
        }
        missing = [name for name in REQUIRED_WORKER_VARIABLES if not values[name]]
        if missing:
            raise ConfigurationError(
                "Missing required environment variable(s): " + ", ".join(missing),
                context={"missing": missing},
            )

        visibility = env.get("VISIBILITY_TIMEOUT_SECONDS")

        return cls(
            queue_url=values["QUEUE_URL"],
            table_name=values["TABLE_NAME"],
            region=values["REGION"],
            document_bucket=env.get("DOCUMENT_BUCKET") or None,
            document_suffix=env.get("DOCUMENT_SUFFIX", ".pdf"),
            wait_time_seconds=_int_env(env, "WAIT_TIME_SECONDS", 10),
            poll_interval_seconds=_float_env(env, "POLL_INTERVAL_SECONDS", 5.0),
            visibility_timeout_seconds=(
                _int_env(env, "VISIBILITY_TIMEOUT_SECONDS", 0) if visibility else None
            ),
            max_receive_count=_int_env(env, "MAX_RECEIVE_COUNT", 5),
            dead_letter_queue_url=env.get("DEAD_LETTER_QUEUE_URL") or None,
        )
