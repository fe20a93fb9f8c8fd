"""Server configuration."""
import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

_RECOGNISED_BOOL_VALUES = frozenset(
    ("1", "true", "yes", "0", "false", "no")
)


@dataclass(frozen=True)
class LifecycleConfig:
    """What happens to a session id after its client goes away.

    ``auto_recreate_on_disconnect``: start a fresh session (and QR) when
        the client reports a disconnect.
    ``auto_recreate_on_auth_failure``: same after an authentication
        failure; off by default because the stored credentials are erased
        and the caller usually needs to re-pair deliberately.
    """

    auto_recreate_on_disconnect: bool = True
    auto_recreate_on_auth_failure: bool = False


@dataclass(frozen=True)
class AdminConfig:
    """Where and how the account identity of ready sessions is reported.

    An empty ``endpoint`` disables the POST; identities are still cached.
    """

    endpoint: str = ""
    timeout: float = 5.0
    poll_attempts: int = 5
    poll_interval: float = 1.0


@dataclass(frozen=True)
class BridgeConfig:
    url: str = "ws://localhost:3001"
    token: str = ""
    send_timeout: float = 30.0


@dataclass(frozen=True)
class ServerConfig:
    sessions_dir: Path = field(default_factory=lambda: Path("sessions"))
    recover_on_startup: bool = True
    lifecycle: LifecycleConfig = field(default_factory=LifecycleConfig)
    admin: AdminConfig = field(default_factory=AdminConfig)
    bridge: BridgeConfig = field(default_factory=BridgeConfig)
    cors_origins: tuple[str, ...] = ("*",)
    host: str = "0.0.0.0"
    port: int = 3000


def _parse_bool(value: str, default: bool) -> bool:
    """Parse a boolean environment variable with explicit default.

    Recognises ``true/1/yes`` and ``false/0/no`` (case-insensitive).
    Returns *default* when the value is empty or unset.
    Logs a warning and returns *default* for unrecognised values
    (e.g. typos like ``ture``).
    """
    if not value:
        return default
    normalised = value.lower()
    if normalised not in _RECOGNISED_BOOL_VALUES:
        logger.warning(
            "Unrecognised boolean value %r, using default %s. "
            "Expected one of: true/1/yes or false/0/no.",
            value,
            default,
        )
        return default
    return normalised in ("1", "true", "yes")


def _parse_number(name: str, default: str, cast: type) -> Any:
    raw = os.environ.get(name, default)
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(f"{name} must be a {cast.__name__}, got {raw!r}") from None


def _parse_origins(value: str) -> tuple[str, ...]:
    origins = tuple(o.strip() for o in value.split(",") if o.strip())
    return origins or ("*",)


def load_config_from_env() -> ServerConfig:
    admin_endpoint = os.environ.get("WAGATE_ADMIN_ENDPOINT", "")
    if not admin_endpoint:
        logger.info("WAGATE_ADMIN_ENDPOINT not set, admin numbers will not be published")

    poll_attempts = _parse_number("WAGATE_IDENTITY_POLL_ATTEMPTS", "5", int)
    if poll_attempts < 1:
        raise ValueError("WAGATE_IDENTITY_POLL_ATTEMPTS must be at least 1")

    return ServerConfig(
        sessions_dir=Path(os.environ.get("WAGATE_SESSIONS_DIR", "sessions")),
        recover_on_startup=_parse_bool(os.environ.get("WAGATE_RECOVER", ""), default=True),
        lifecycle=LifecycleConfig(
            auto_recreate_on_disconnect=_parse_bool(
                os.environ.get("WAGATE_AUTO_RECREATE", ""), default=True
            ),
            auto_recreate_on_auth_failure=_parse_bool(
                os.environ.get("WAGATE_AUTO_RECREATE_AUTH_FAILURE", ""), default=False
            ),
        ),
        admin=AdminConfig(
            endpoint=admin_endpoint,
            timeout=_parse_number("WAGATE_ADMIN_TIMEOUT", "5.0", float),
            poll_attempts=poll_attempts,
            poll_interval=_parse_number("WAGATE_IDENTITY_POLL_INTERVAL", "1.0", float),
        ),
        bridge=BridgeConfig(
            url=os.environ.get("WAGATE_BRIDGE_URL", "ws://localhost:3001"),
            token=os.environ.get("WAGATE_BRIDGE_TOKEN", ""),
            send_timeout=_parse_number("WAGATE_SEND_TIMEOUT", "30.0", float),
        ),
        cors_origins=_parse_origins(os.environ.get("WAGATE_CORS_ORIGINS", "*")),
        host=os.environ.get("WAGATE_HOST", "0.0.0.0"),
        port=_parse_number("WAGATE_PORT", "3000", int),
    )


_SECTIONS = {"lifecycle": LifecycleConfig, "admin": AdminConfig, "bridge": BridgeConfig}


def load_config_from_file(path: Path, base: Optional[ServerConfig] = None) -> ServerConfig:
    """Overlay values from a YAML file on ``base`` (environment by default).

    Unknown keys are rejected so typos do not silently fall back to defaults.
    """
    base = base or load_config_from_env()
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")

    top_level = {f.name for f in fields(ServerConfig)}
    unknown = set(data) - top_level
    if unknown:
        raise ValueError(f"Unknown config keys in {path}: {', '.join(sorted(unknown))}")

    overrides: dict[str, Any] = {}
    for key, value in data.items():
        section = _SECTIONS.get(key)
        if section is not None:
            if not isinstance(value, dict):
                raise ValueError(f"Config section {key!r} must be a mapping")
            allowed = {f.name for f in fields(section)}
            bad = set(value) - allowed
            if bad:
                raise ValueError(f"Unknown keys in {key!r}: {', '.join(sorted(bad))}")
            overrides[key] = replace(getattr(base, key), **value)
        elif key == "sessions_dir":
            overrides[key] = Path(value)
        elif key == "cors_origins":
            overrides[key] = tuple(value) if isinstance(value, list) else _parse_origins(str(value))
        else:
            overrides[key] = value
    return replace(base, **overrides)
