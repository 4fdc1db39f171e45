import json
from dataclasses import asdict, is_dataclass
from datetime import datetime, date
from enum import Enum
from typing import Any, Dict, Optional

from ..contracts.events import Report


class StrictForensicEncoder(json.JSONEncoder):
    """
    JSON encoder for report values.

    RULES:
    1. Datetimes are ISO 8601 strings (UTC, offset included).
    2. Enums are emitted as their .value.
    3. Sets become sorted lists.
    4. Anything else unknown is an error, never a repr().
    """

    def default(self, obj: Any) -> Any:
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, (set, frozenset)):
            return sorted(obj)
        if is_dataclass(obj) and not isinstance(obj, type):
            return asdict(obj)

        return super().default(obj)


def report_to_json(report: Report, indent: Optional[int] = None) -> str:
    """Canonical JSON for a report: sorted keys, byte-stable across runs."""
    return json.dumps(
        asdict(report),
        cls=StrictForensicEncoder,
        sort_keys=True,
        indent=indent,
        ensure_ascii=False,
        allow_nan=False,
    )


def report_to_dict(report: Report) -> Dict[str, Any]:
    """JSON-ready dict (enums as values, dates as ISO strings)."""
    return json.loads(report_to_json(report))
