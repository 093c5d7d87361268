"""Draft lifecycle: capture, persistence, send detection and disambiguation."""

from draftkeeper.drafts.cache import MemoryCache, PersistenceDebouncer
from draftkeeper.drafts.manager import DraftLifecycleManager
from draftkeeper.drafts.persistence import DraftPersistence
from draftkeeper.drafts.processing import ProcessingDisambiguator
from draftkeeper.drafts.send_detector import SendSignalDetector
from draftkeeper.drafts.session_state import SessionState
from draftkeeper.drafts.similarity import similarity
from draftkeeper.drafts.sweeper import PendingDeletionSweeper
from draftkeeper.drafts.timers import TimerTable

__all__ = [
    "DraftLifecycleManager",
    "DraftPersistence",
    "MemoryCache",
    "PendingDeletionSweeper",
    "PersistenceDebouncer",
    "ProcessingDisambiguator",
    "SendSignalDetector",
    "SessionState",
    "TimerTable",
    "similarity",
]
