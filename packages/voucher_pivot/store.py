"""File-backed report-definition store.

Layout (relative to the store root, default ``./.reports``)::

    <root>/<report_id>.json

Atomicity: writes target ``.tmp`` first and then ``os.replace`` into place.
Documents are validated with pydantic on load; a file that cannot be read or
parsed is logged and treated as missing.
"""

from __future__ import annotations

import contextlib
import json
import os
import re
from pathlib import Path

from pydantic import ValidationError

from .logging_setup import get_logger
from .models import ReportDefinition
from .settings import get_reports_dir

_REPORT_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]{0,127}$")

_logger = get_logger("voucher_pivot.store")


def _validate_report_id(report_id: str) -> str:
    """Reject ids that could escape the store root."""

    if not _REPORT_ID_RE.fullmatch(report_id) or ".." in report_id:
        raise ValueError(
            f"Invalid report id {report_id!r}: use letters, digits, '_', '-' or '.'"
        )
    return report_id


class ReportStore:
    def __init__(self, root: Path | str | None = None) -> None:
        self.root = Path(root).expanduser().resolve() if root is not None else get_reports_dir()

    def _path(self, report_id: str) -> Path:
        return self.root / f"{_validate_report_id(report_id)}.json"

    def save(self, report_id: str, report: ReportDefinition) -> Path:
        path = self._path(report_id)
        self.root.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(path.suffix + ".tmp")
        try:
            tmp.write_text(
                json.dumps(report.to_json_dict(), ensure_ascii=False, indent=2),
                encoding="utf-8",
            )
            os.replace(tmp, path)
        except Exception:
            with contextlib.suppress(FileNotFoundError):
                tmp.unlink()
            raise
        _logger.debug("store:save report_id=%s path=%s", report_id, os.fspath(path))
        return path

    def load(self, report_id: str) -> ReportDefinition | None:
        path = self._path(report_id)
        if not path.exists():
            return None
        try:
            return ReportDefinition.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, ValidationError):
            _logger.warning(
                "store:read_failed report_id=%s path=%s",
                report_id,
                os.fspath(path),
                exc_info=True,
            )
            return None

    def list_ids(self) -> list[str]:
        if not self.root.is_dir():
            return []
        return sorted(
            p.stem for p in self.root.glob("*.json") if _REPORT_ID_RE.fullmatch(p.stem)
        )

    def delete(self, report_id: str) -> bool:
        path = self._path(report_id)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        _logger.debug("store:delete report_id=%s", report_id)
        return True


__all__ = ["ReportStore"]
