import json
from typing import Any


def json_dumps(obj: Any) -> str:
    """Compact JSON for request bodies."""
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False)
