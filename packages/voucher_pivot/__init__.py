"""Public interface for the ``voucher_pivot`` package.

This module exposes the report pipeline entry points and public models/types
as the stable import surface. There is no runtime logic here, only symbol
re-exports.
"""

from .accessor import ValueAccessor
from .catalog import FieldCatalog, build_catalog
from .filters import apply_filters
from .grouping import decode_key, encode_key
from .joins import JoinContext
from .models import (
    Dataset,
    FieldDescriptor,
    FilterSpec,
    PivotAxisField,
    PivotConfig,
    PivotResult,
    Relationship,
    ReportDefinition,
    SavedPivot,
    ValueField,
)
from .pivot import recompute
from .relationships import propose_join, resolve_relationships
from .scheduler import PivotScheduler
from .store import ReportStore
from .tabular import build_table

__all__ = [
    # Pipeline
    "apply_filters",
    "build_catalog",
    "build_table",
    "decode_key",
    "encode_key",
    "propose_join",
    "recompute",
    "resolve_relationships",
    "JoinContext",
    "PivotScheduler",
    "ReportStore",
    "ValueAccessor",
    # Models / types
    "Dataset",
    "FieldCatalog",
    "FieldDescriptor",
    "FilterSpec",
    "PivotAxisField",
    "PivotConfig",
    "PivotResult",
    "Relationship",
    "ReportDefinition",
    "SavedPivot",
    "ValueField",
]
