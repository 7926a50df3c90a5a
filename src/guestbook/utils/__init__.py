from .timestamps import now_iso, utc_now, epoch_seconds, to_iso
from .json import json_dumps
from .id_gen import generate_local_id, generate_ulid
from .logging import configure_logging

__all__ = [
    "now_iso",
    "utc_now",
    "epoch_seconds",
    "to_iso",
    "json_dumps",
    "generate_local_id",
    "generate_ulid",
    "configure_logging",
]
