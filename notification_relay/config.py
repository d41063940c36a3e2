"""Environment-variable configuration, read once at startup."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

MAIL_BACKENDS = ("mailgun", "console")
LOG_FORMATS = ("console", "json")


@dataclass(frozen=True)
class Settings:
    kafka_bootstrap_servers: list[str]
    kafka_group_id: str = "notification-relay"
    kafka_auto_offset_reset: str = "earliest"
    kafka_poll_timeout_ms: int = 1000
    kafka_max_records_per_poll: int = 50
    kafka_dlq_enabled: bool = False
    kafka_send_timeout_seconds: float = 10.0
    kafka_producer_acks: str = "all"
    handler_timeout_seconds: float = 30.0
    database_url: str = "sqlite:///notification_relay.db"
    mail_backend: str = "mailgun"
    elasticsearch_url: str = "http://localhost:9200"
    elasticsearch_api_key: str | None = None
    elasticsearch_index: str = "microservice_products"
    elasticsearch_title_field: str = "title.keyword"
    elasticsearch_timeout_seconds: float = 5.0
    port: int = 7000
    log_level: str = "INFO"
    log_format: str = "console"


def load_settings() -> Settings:
    """Build `Settings` from the process environment.

    Raises `RuntimeError` naming the variable for anything missing or invalid.
    Mailgun credentials are read by the mail adapter itself at send time.
    """
    mail_backend = os.getenv("MAIL_BACKEND", "mailgun").strip().lower()
    if mail_backend not in MAIL_BACKENDS:
        raise RuntimeError(f"MAIL_BACKEND must be one of {MAIL_BACKENDS}, got {mail_backend!r}")

    log_format = os.getenv("LOG_FORMAT", "console").strip().lower()
    if log_format not in LOG_FORMATS:
        raise RuntimeError(f"LOG_FORMAT must be one of {LOG_FORMATS}, got {log_format!r}")

    return Settings(
        kafka_bootstrap_servers=_bootstrap_servers_from_env(),
        kafka_group_id=os.getenv("KAFKA_GROUP_ID", "notification-relay"),
        kafka_auto_offset_reset=os.getenv("KAFKA_AUTO_OFFSET_RESET", "earliest"),
        kafka_poll_timeout_ms=_poll_timeout_ms_from_env(),
        kafka_max_records_per_poll=_env_int("KAFKA_MAX_RECORDS_PER_POLL", 50),
        kafka_dlq_enabled=_env_bool("KAFKA_DLQ_ENABLED", default=False),
        kafka_send_timeout_seconds=_env_float("KAFKA_SEND_TIMEOUT_SECONDS", 10.0),
        kafka_producer_acks=os.getenv("KAFKA_PRODUCER_ACKS", "all"),
        handler_timeout_seconds=_env_float("HANDLER_TIMEOUT_SECONDS", 30.0),
        database_url=os.getenv("DATABASE_URL", "sqlite:///notification_relay.db"),
        mail_backend=mail_backend,
        elasticsearch_url=os.getenv("ELASTICSEARCH_URL", "http://localhost:9200").rstrip("/"),
        elasticsearch_api_key=os.getenv("ELASTICSEARCH_API_KEY") or None,
        elasticsearch_index=os.getenv("ELASTICSEARCH_INDEX", "microservice_products"),
        elasticsearch_title_field=os.getenv("ELASTICSEARCH_TITLE_FIELD", "title.keyword"),
        elasticsearch_timeout_seconds=_env_float("ELASTICSEARCH_TIMEOUT_SECONDS", 5.0),
        port=_env_int("PORT", 7000),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_format=log_format,
    )


def load_env_file(path: Path) -> None:
    """Load `KEY=value` lines into the environment without overriding it."""
    if not path.exists():
        return

    for line in path.read_text(encoding="utf-8").splitlines():
        text = line.strip()
        if not text or text.startswith("#") or "=" not in text:
            continue
        key, value = text.split("=", 1)
        key = key.strip()
        value = value.strip()
        if not key:
            continue
        if value.startswith(("'", '"')) and value.endswith(("'", '"')) and len(value) >= 2:
            value = value[1:-1]
        os.environ.setdefault(key, value)


def _required_env(name: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value.strip()


def _bootstrap_servers_from_env() -> list[str]:
    raw = _required_env("KAFKA_BOOTSTRAP_SERVERS")
    servers = [item.strip() for item in raw.split(",") if item.strip()]
    if not servers:
        raise RuntimeError("KAFKA_BOOTSTRAP_SERVERS must include at least one host:port")
    return servers


def _poll_timeout_ms_from_env() -> int:
    timeout_ms = int(_env_float("KAFKA_POLL_TIMEOUT_SECONDS", 1.0) * 1000)
    if timeout_ms <= 0:
        raise RuntimeError("KAFKA_POLL_TIMEOUT_SECONDS must be > 0")
    return timeout_ms


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    normalized = raw.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise RuntimeError(f"Invalid boolean value for {name}: {raw!r}")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise RuntimeError(f"Invalid numeric value for {name}: {raw!r}") from None


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"Invalid integer value for {name}: {raw!r}") from None
