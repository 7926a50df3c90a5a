from .store import EntryStore
from .manager import LifecycleManager, SnapshotListener
from .settings import GuestbookSettings, get_settings

__all__ = [
    "EntryStore",
    "LifecycleManager",
    "SnapshotListener",
    "GuestbookSettings",
    "get_settings",
]
