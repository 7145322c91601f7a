"""JSON formatter for exported rows and the build manifest."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pathlib import Path


def _serialize_value(val: Any) -> Any:
    if isinstance(val, (int, float, str, bool, type(None))):
        return val
    if isinstance(val, dict):
        return {str(k): _serialize_value(v) for k, v in val.items()}
    if isinstance(val, (list, tuple)):
        return [_serialize_value(v) for v in val]
    if isinstance(val, (bytes, memoryview)):
        return bytes(val).hex()
    return str(val)


class JSONFormatter:
    def __init__(self, compact: bool = False) -> None:
        self.compact = compact

    def format(self, data: Any) -> str:
        payload = _serialize_value(data)
        if self.compact:
            return json.dumps(payload, default=str)
        return json.dumps(payload, indent=2, default=str)

    def write(self, path: Path, data: Any) -> None:
        """Write ``data`` to ``path``, replacing any previous file."""
        path.write_text(self.format(data), encoding="utf-8")
