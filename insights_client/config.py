"""Insights client configuration helpers."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional
import os

from dotenv import load_dotenv

from .app.feature_gates.quota import DEFAULT_FREE_INSIGHT_LIMIT


@dataclass(frozen=True)
class ClientConfig:
    """Configuration for the insights backend and free-view quota."""

    api_base_url: str
    free_insight_limit: int
    http_timeout_seconds: Optional[float]
    verify_tls: bool
    access_token: Optional[str]


def _to_bool(value: Optional[str], *, default: bool) -> bool:
    if value is None:
        return default
    lowered = value.strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    return default


def _to_int(value: Optional[str], *, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Expected integer value, got {value!r}") from exc


def _to_optional_float(value: Optional[str]) -> Optional[float]:
    if value is None or value.strip() == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Expected float value, got {value!r}") from exc


def load_client_config(
    env: Optional[Mapping[str, str]] = None,
    *,
    dotenv_path: Optional[str] = None,
) -> ClientConfig:
    """Load :class:`ClientConfig` from environment variables.

    When ``env`` is omitted the process environment is used, after merging any
    values from a ``.env`` file.
    """

    if env is None:
        load_dotenv(dotenv_path)
        env_mapping: Mapping[str, str] = os.environ
    else:
        env_mapping = env

    api_base_url = env_mapping.get("INSIGHTS_API_BASE_URL", "http://localhost:5000")
    free_insight_limit = max(
        1, _to_int(env_mapping.get("INSIGHTS_FREE_LIMIT"), default=DEFAULT_FREE_INSIGHT_LIMIT)
    )
    # Unset means no client-side timeout; callers apply their own.
    timeout = _to_optional_float(env_mapping.get("INSIGHTS_HTTP_TIMEOUT"))
    if timeout is not None and timeout <= 0:
        timeout = None
    verify_tls = _to_bool(env_mapping.get("INSIGHTS_VERIFY_TLS"), default=True)
    access_token = env_mapping.get("INSIGHTS_ACCESS_TOKEN") or None

    return ClientConfig(
        api_base_url=api_base_url.rstrip("/"),
        free_insight_limit=free_insight_limit,
        http_timeout_seconds=timeout,
        verify_tls=verify_tls,
        access_token=access_token,
    )
