"""
batch.py - run a schema over every row of a pandas DataFrame.

Useful when submissions arrive in bulk (CSV exports, queued form posts):
each row is processed exactly as a single mapping would be, with missing
cells (``NaN``/``None``) treated as absent fields.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Hashable

import pandas as pd

from .registry import Registry
from .validator import RejectMap

__all__ = [
    "BatchResult",
    "process_frame",
    "rejects_frame",
]

REJECT_COLUMNS = ["row", "path", "rule", "args", "unknown"]


@dataclass
class BatchResult:
    """Per-row outputs (same index as the input frame) and per-row rejects;
    rows without rejects are absent from ``rejects``."""

    output: pd.DataFrame
    rejects: dict[Hashable, RejectMap] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.rejects


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (list, tuple, dict)):
        return False
    return bool(pd.isna(value))


def _records(frame: pd.DataFrame) -> list[dict[Any, Any]]:
    """One plain dict per row of *frame*, missing cells as ``None``.

    A float column holding gaps and otherwise only whole numbers is an int
    column pandas upcast; its values go back to ``int``.
    """
    if frame.shape[1] == 0:
        return [{} for _ in range(len(frame))]
    columns = []
    for position in range(frame.shape[1]):
        column = frame.iloc[:, position]
        values = column.astype(object).where(column.notna(), None).tolist()
        if column.dtype.kind == "f" and column.hasnans:
            present = column.dropna()
            if (present == present.round()).all():
                values = [None if v is None else int(v) for v in values]
        columns.append(values)
    return [dict(zip(frame.columns, row)) for row in zip(*columns)]


def process_frame(registry: Registry, name: str, frame: pd.DataFrame) -> BatchResult:
    """Process every row of *frame* against schema *name*."""
    if not isinstance(frame, pd.DataFrame):
        raise TypeError(f"process_frame expects a DataFrame, got {type(frame).__name__}")

    outputs: list[dict[Any, Any]] = []
    rejects: dict[Hashable, RejectMap] = {}
    for index, record in zip(frame.index, _records(frame)):
        row = {k: v for k, v in record.items() if not _is_missing(v)}
        result = registry.process(name, row)
        outputs.append(result.output)
        if result.rejects:
            rejects[index] = result.rejects

    return BatchResult(output=pd.DataFrame(outputs, index=frame.index), rejects=rejects)


def rejects_frame(rejects: dict[Hashable, RejectMap]) -> pd.DataFrame:
    """Flatten per-row rejects into one row per failure descriptor."""
    rows = [
        {
            "row": index,
            "path": path,
            "rule": descriptor.get("rule"),
            "args": descriptor.get("args", []),
            "unknown": bool(descriptor.get("unknown", False)),
        }
        for index, reject_map in rejects.items()
        for path, descriptors in reject_map.items()
        for descriptor in descriptors
    ]
    return pd.DataFrame(rows, columns=REJECT_COLUMNS)
