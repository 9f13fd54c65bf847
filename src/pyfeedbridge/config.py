"""Bridge and viewer configuration for pyfeedbridge."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pyfeedbridge._constants import (
    API_BASE_URL,
    BROKER_HOST,
    BROKER_TLS_PORT,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_PORT,
    DEFAULT_RECONNECT_DELAY,
    DEFAULT_REQUEST_TIMEOUT,
    WS_PATH,
)
from pyfeedbridge.exceptions import FeedBridgeConfigError


def parse_feed_list(value: str | None) -> tuple[str, ...]:
    """Split a comma-separated feed list, dropping blanks."""
    if not value:
        return ()
    return tuple(part.strip() for part in value.split(",") if part.strip())


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_number(env: Any, key: str, cast: type[int] | type[float]) -> int | float | None:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return None
    try:
        return cast(raw)
    except ValueError as exc:
        raise FeedBridgeConfigError(f"{key} must be a number, got {raw!r}") from exc


@dataclasses.dataclass(frozen=True)
class BridgeConfig:
    """Server-side bridge configuration.

    Parameters
    ----------
    aio_username : str
        Broker account name. Also the first segment of every feed topic.
    aio_key : str
        Broker account key, sent as MQTT password and REST header.
    feeds : tuple of str
        Feed keys to subscribe to. May be empty (the bridge then idles).
    host : str
        Local listen address.
    port : int
        Local listen port.
    broker_host : str
        MQTT broker host name.
    broker_port : int
        MQTT broker port. TLS is enabled when this is 8883.
    api_base_url : str
        REST API base URL used by the pull routes.
    mqtt_enabled : bool
        Subscribe to the broker. Disable to serve only the pull routes.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    request_timeout : float
        Total timeout in seconds for one upstream REST request.
    """

    aio_username: str
    aio_key: str
    feeds: tuple[str, ...] = ()
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    broker_host: str = BROKER_HOST
    broker_port: int = BROKER_TLS_PORT
    api_base_url: str = API_BASE_URL
    mqtt_enabled: bool = True
    mqtt_keepalive: int = 60
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    def __post_init__(self) -> None:
        if not self.aio_username or not self.aio_key:
            raise FeedBridgeConfigError("Missing AIO_USER or AIO_KEY")
        if isinstance(self.feeds, str):
            object.__setattr__(self, "feeds", parse_feed_list(self.feeds))

    @property
    def use_tls(self) -> bool:
        return self.broker_port == BROKER_TLS_PORT

    def feed_topic(self, feed_key: str) -> str:
        """MQTT topic carrying updates for *feed_key*."""
        return f"{self.aio_username}/feeds/{feed_key}"

    @classmethod
    def from_env(cls, **overrides: Any) -> BridgeConfig:
        """Create configuration from environment variables.

        Reads ``AIO_USER``, ``AIO_KEY``, ``FEEDS`` and ``PORT`` plus the
        optional ``FEEDBRIDGE_*`` variables. Explicit keyword arguments
        override environment values.

        Raises
        ------
        FeedBridgeConfigError
            When the credentials are missing or a numeric variable is invalid.
        """
        env = os.environ

        config_kwargs: dict[str, Any] = {
            "aio_username": env.get("AIO_USER", "").strip(),
            "aio_key": env.get("AIO_KEY", "").strip(),
            "feeds": parse_feed_list(env.get("FEEDS")),
        }

        _ENV_STR_MAP = {
            "FEEDBRIDGE_HOST": "host",
            "FEEDBRIDGE_BROKER_HOST": "broker_host",
            "FEEDBRIDGE_API_BASE_URL": "api_base_url",
        }
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val:
                config_kwargs[field_name] = val.strip()

        _ENV_NUM_MAP: dict[str, tuple[str, type[int] | type[float]]] = {
            "PORT": ("port", int),
            "FEEDBRIDGE_BROKER_PORT": ("broker_port", int),
            "FEEDBRIDGE_MQTT_KEEPALIVE": ("mqtt_keepalive", int),
            "FEEDBRIDGE_REQUEST_TIMEOUT": ("request_timeout", float),
        }
        for env_key, (field_name, cast) in _ENV_NUM_MAP.items():
            if field_name in overrides:
                continue
            number = _env_number(env, env_key, cast)
            if number is not None:
                config_kwargs[field_name] = number

        if "mqtt_enabled" not in overrides:
            config_kwargs["mqtt_enabled"] = _env_bool(env.get("FEEDBRIDGE_MQTT_ENABLED"), True)

        config_kwargs.update(overrides)
        return cls(**config_kwargs)


@dataclasses.dataclass(frozen=True)
class FeedRoles:
    """Which feed key carries which sensor."""

    motion: str = "mpu-data"
    temperature: str = "temp-data"
    heart_ox: str = "max-data"
    gps: str = "gps-data"

    def keys(self) -> tuple[str, ...]:
        """All feed keys, in a stable order, without duplicates."""
        ordered = (self.motion, self.temperature, self.heart_ox, self.gps)
        return tuple(dict.fromkeys(key for key in ordered if key))


@dataclasses.dataclass(frozen=True)
class ClientConfig:
    """Viewer session configuration.

    Parameters
    ----------
    base_url : str
        Bridge HTTP base URL (pull routes).
    ws_url : str or None
        Push channel URL. Derived from ``base_url`` when omitted.
    feeds : FeedRoles
        Feed keys per sensor role.
    poll_interval : float
        Seconds between periodic pull sweeps.
    reconnect_delay : float
        Fixed delay in seconds before reconnecting a lost push channel.
    request_timeout : float
        Total timeout in seconds for one pull request.
    """

    base_url: str = f"http://localhost:{DEFAULT_PORT}"
    ws_url: str | None = None
    feeds: FeedRoles = dataclasses.field(default_factory=FeedRoles)
    poll_interval: float = DEFAULT_POLL_INTERVAL
    reconnect_delay: float = DEFAULT_RECONNECT_DELAY
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    def __post_init__(self) -> None:
        if self.poll_interval <= 0:
            raise FeedBridgeConfigError("poll_interval must be positive")
        if self.reconnect_delay < 0:
            raise FeedBridgeConfigError("reconnect_delay must not be negative")

    @property
    def push_url(self) -> str:
        if self.ws_url:
            return self.ws_url
        base = self.base_url.rstrip("/")
        if base.startswith("https://"):
            base = "wss://" + base[len("https://") :]
        elif base.startswith("http://"):
            base = "ws://" + base[len("http://") :]
        return f"{base}{WS_PATH}"

    @classmethod
    def from_env(cls, **overrides: Any) -> ClientConfig:
        """Create viewer configuration from ``FEEDBRIDGE_*`` environment variables."""
        env = os.environ

        role_kwargs: dict[str, str] = {}
        _ENV_ROLE_MAP = {
            "FEEDBRIDGE_FEED_MOTION": "motion",
            "FEEDBRIDGE_FEED_TEMPERATURE": "temperature",
            "FEEDBRIDGE_FEED_HEART_OX": "heart_ox",
            "FEEDBRIDGE_FEED_GPS": "gps",
        }
        for env_key, field_name in _ENV_ROLE_MAP.items():
            val = env.get(env_key)
            if val:
                role_kwargs[field_name] = val.strip()

        role_overrides = overrides.pop("feeds", None)
        if isinstance(role_overrides, dict):
            role_kwargs.update(role_overrides)
        elif isinstance(role_overrides, FeedRoles):
            role_kwargs = dataclasses.asdict(role_overrides)

        config_kwargs: dict[str, Any] = {"feeds": FeedRoles(**role_kwargs)}

        base_url = env.get("FEEDBRIDGE_URL")
        if base_url:
            config_kwargs["base_url"] = base_url.strip()
        ws_url = env.get("FEEDBRIDGE_WS_URL")
        if ws_url:
            config_kwargs["ws_url"] = ws_url.strip()

        for env_key, field_name in (
            ("FEEDBRIDGE_POLL_INTERVAL", "poll_interval"),
            ("FEEDBRIDGE_RECONNECT_DELAY", "reconnect_delay"),
            ("FEEDBRIDGE_REQUEST_TIMEOUT", "request_timeout"),
        ):
            if field_name in overrides:
                continue
            number = _env_number(env, env_key, float)
            if number is not None:
                config_kwargs[field_name] = number

        config_kwargs.update(overrides)
        return cls(**config_kwargs)
