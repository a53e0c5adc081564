"""Runtime settings resolved from environment variables.

Every knob has a conservative default; malformed or non-positive overrides are
ignored rather than raised so a stray env var never breaks a report.

- ``VOUCHER_PIVOT_SAMPLE_SIZE``: leading primary records sampled for the field
  catalog (default 10).
- ``VOUCHER_PIVOT_MAX_DEPTH``: nesting depth walked by the catalog (default 5).
- ``VOUCHER_PIVOT_DEBOUNCE_MS``: scheduler debounce window (default 0).
- ``VOUCHER_PIVOT_REPORTS_DIR``: report store root (default ``./.reports``).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_SAMPLE_SIZE = 10
DEFAULT_MAX_DEPTH = 5


@dataclass(frozen=True, slots=True)
class Settings:
    sample_size: int = DEFAULT_SAMPLE_SIZE
    max_depth: int = DEFAULT_MAX_DEPTH
    debounce_seconds: float = 0.0
    reports_dir: Path = Path(".reports")


def _env_int(name: str, default: int, *, allow_zero: bool = False) -> int:
    raw = os.getenv(name)
    if not raw or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        return default
    if value < 0 or (value == 0 and not allow_zero):
        return default
    return value


def get_reports_dir() -> Path:
    """Return the report store root.

    Default: ``./.reports`` under the current working directory.
    Override: ``VOUCHER_PIVOT_REPORTS_DIR`` (absolute or relative).
    """

    root = os.getenv("VOUCHER_PIVOT_REPORTS_DIR")
    if root and root.strip():
        return Path(root).expanduser().resolve()
    return (Path.cwd() / ".reports").resolve()


def load_settings() -> Settings:
    return Settings(
        sample_size=_env_int("VOUCHER_PIVOT_SAMPLE_SIZE", DEFAULT_SAMPLE_SIZE),
        max_depth=_env_int("VOUCHER_PIVOT_MAX_DEPTH", DEFAULT_MAX_DEPTH),
        debounce_seconds=_env_int("VOUCHER_PIVOT_DEBOUNCE_MS", 0, allow_zero=True) / 1000.0,
        reports_dir=get_reports_dir(),
    )


__all__ = ["Settings", "get_reports_dir", "load_settings"]
