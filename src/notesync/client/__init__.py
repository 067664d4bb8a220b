"""Client side of note synchronisation."""

from .api import ApiError, NotesApiClient
from .debounce import Debouncer
from .sync import NoteSyncController, SyncState, open_note

__all__ = [
    "ApiError",
    "Debouncer",
    "NoteSyncController",
    "NotesApiClient",
    "SyncState",
    "open_note",
]
