from .actions import ActionResult, BrowserActions
from .session_manager import BrowserSession, SessionManager
from .storage_state import StorageStateStore

__all__ = ["ActionResult", "BrowserActions", "BrowserSession", "SessionManager", "StorageStateStore"]
