"""Background recomputation with last-writer-wins publishing.

:func:`~voucher_pivot.pivot.recompute` is pure and synchronous. Callers that
recompute on every config edit (an interactive front-end, a file watcher)
wrap it in :class:`PivotScheduler`:

- every :meth:`PivotScheduler.submit` bumps a config version;
- a predecessor that has not started yet is cancelled;
- a job superseded while it waits out the debounce window is skipped;
- a finished job publishes only if its version is still the latest, so a
  slow, stale computation can never overwrite a newer result.

Jobs run on a single worker thread, so computations never overlap.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TypeAlias

from .catalog import FieldCatalog, build_catalog
from .logging_setup import get_logger
from .models import Dataset, PivotConfig, PivotResult, Relationship
from .pivot import recompute
from .settings import load_settings

_logger = get_logger("voucher_pivot.scheduler")

PublishCallback: TypeAlias = Callable[[int, PivotResult], None]


class PivotScheduler:
    """Serialize recomputations for one dataset snapshot.

    ``submit`` returns a future resolving to the published
    :class:`PivotResult`, or ``None`` when the job was superseded.
    """

    def __init__(
        self,
        dataset: Dataset,
        relationships: Mapping[str, Relationship] | Iterable[Relationship] = (),
        *,
        on_publish: PublishCallback | None = None,
        debounce_seconds: float | None = None,
        catalog: FieldCatalog | None = None,
    ) -> None:
        settings = load_settings()
        self.dataset = dataset
        self.relationships = (
            dict(relationships) if isinstance(relationships, Mapping) else list(relationships)
        )
        self.debounce_seconds = (
            settings.debounce_seconds if debounce_seconds is None else max(0.0, debounce_seconds)
        )
        if catalog is None:
            catalog = build_catalog(
                dataset.primary, dataset.customers, dataset.stockitems, settings=settings
            )
        self.catalog = catalog
        self._on_publish = on_publish
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="voucher-pivot")
        self._cond = threading.Condition()
        self._version = 0
        self._pending: Future[PivotResult | None] | None = None
        self._latest: tuple[int, PivotResult] | None = None
        self._closed = False

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def version(self) -> int:
        with self._cond:
            return self._version

    @property
    def latest(self) -> tuple[int, PivotResult] | None:
        """``(version, result)`` of the last published computation."""
        with self._cond:
            return self._latest

    def submit(self, config: PivotConfig) -> Future[PivotResult | None]:
        with self._cond:
            if self._closed:
                raise RuntimeError("scheduler is closed")
            self._version += 1
            version = self._version
            if self._pending is not None and self._pending.cancel():
                _logger.debug("scheduler:cancelled version=%d", version - 1)
            self._cond.notify_all()
            fut = self._executor.submit(self._run, version, config)
            self._pending = fut
        return fut

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()
        self._executor.shutdown(wait=True, cancel_futures=True)

    def __enter__(self) -> PivotScheduler:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------

    def _superseded(self, version: int) -> bool:
        return self._version != version or self._closed

    def _run(self, version: int, config: PivotConfig) -> PivotResult | None:
        if self.debounce_seconds > 0:
            with self._cond:
                self._cond.wait_for(
                    lambda: self._superseded(version), timeout=self.debounce_seconds
                )
        with self._cond:
            if self._superseded(version):
                _logger.debug("scheduler:skip version=%d reason=superseded", version)
                return None

        result = recompute(self.dataset, self.relationships, config, catalog=self.catalog)

        with self._cond:
            if self._superseded(version):
                _logger.debug("scheduler:discard version=%d latest=%d", version, self._version)
                return None
            self._latest = (version, result)
        _logger.debug("scheduler:publish version=%d rows=%d", version, len(result.row_keys))
        if self._on_publish is not None:
            self._on_publish(version, result)
        return result


__all__ = ["PivotScheduler"]
