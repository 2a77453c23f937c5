"""Isolated Playwright sessions keyed by ``{taskId}_{carrierId}``."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional

from playwright.async_api import async_playwright

from quote_engine.core.errors import SessionCreationError

from .storage_state import StorageStateStore

LOGGER = logging.getLogger(__name__)

LAUNCH_ARGS = [
    "--disable-gpu",
    "--disable-dev-shm-usage",
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-blink-features=AutomationControlled",
]

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

# Runs before any page script in every frame of the context.
STEALTH_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
Object.defineProperty(navigator, 'languages', { get: () => ['en-US', 'en'] });
window.chrome = window.chrome || { runtime: {} };
"""

BrowserFactory = Callable[[], Awaitable[Any]]


@dataclass
class BrowserSession:
    """One isolated browser context and its single page."""

    key: str
    context: Any
    page: Any
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    async def close(self) -> None:
        try:
            if not self.page.is_closed():
                await self.page.close()
        finally:
            await self.context.close()


class SessionManager:
    """Owns at most one live session per key and swaps out poisoned ones."""

    def __init__(
        self,
        *,
        settings: Dict[str, Any] | None = None,
        browser_factory: BrowserFactory | None = None,
        storage: StorageStateStore | None = None,
    ) -> None:
        config = settings or {}
        browser_cfg = config.get("browser", {})
        timeouts = config.get("timeouts", {})
        self.headless = bool(browser_cfg.get("headless", True))
        self.slow_mo = int(browser_cfg.get("slow_mo", 0))
        viewport = browser_cfg.get("viewport") or {}
        self.viewport = {"width": int(viewport.get("width", 1280)), "height": int(viewport.get("height", 720))}
        self.user_agent = browser_cfg.get("user_agent") or DEFAULT_USER_AGENT
        self.locale = browser_cfg.get("locale", "en-US")
        self.timezone_id = browser_cfg.get("timezone_id", "America/New_York")
        self.health_timeout = float(browser_cfg.get("health_check_timeout", 3.0))
        self.action_timeout_ms = int(timeouts.get("action_ms", 5000))
        self.recovery_timeout_ms = int(timeouts.get("recovery_navigation_ms", 60000))
        self.storage = storage
        self._browser_factory = browser_factory
        self._playwright: Any = None
        self._browser: Any = None
        self._browser_lock = asyncio.Lock()
        self._sessions: Dict[str, BrowserSession] = {}
        self._last_urls: Dict[str, str] = {}
        self._poisoned: set[str] = set()
        self._closed: set[str] = set()
        self._locks: Dict[str, asyncio.Lock] = {}

    # ------------------------------------------------------------------ browser

    def _browser_alive(self) -> bool:
        if self._browser is None:
            return False
        probe = getattr(self._browser, "is_connected", None)
        return bool(probe()) if callable(probe) else True

    async def _launch_browser(self) -> Any:
        if self._browser_factory is not None:
            return await self._browser_factory()
        self._playwright = await async_playwright().start()
        try:
            return await self._playwright.chromium.launch(
                headless=self.headless,
                slow_mo=self.slow_mo,
                args=LAUNCH_ARGS,
            )
        except Exception:
            playwright, self._playwright = self._playwright, None
            await playwright.stop()
            raise

    async def _ensure_browser(self) -> Any:
        async with self._browser_lock:
            if not self._browser_alive():
                self._browser = await self._launch_browser()
                LOGGER.info("Chromium launched (headless=%s)", self.headless)
            return self._browser

    def context_options(self, key: str) -> Dict[str, Any]:
        options: Dict[str, Any] = {
            "viewport": dict(self.viewport),
            "user_agent": self.user_agent,
            "locale": self.locale,
            "timezone_id": self.timezone_id,
            "ignore_https_errors": True,
        }
        stored = self.storage.load(key) if self.storage else None
        if stored:
            options["storage_state"] = stored
        return options

    # ----------------------------------------------------------------- sessions

    def lock(self, key: str) -> asyncio.Lock:
        """Per-key lock that keeps one carrier chain strictly sequential."""

        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    def is_closed(self, key: str) -> bool:
        return key in self._closed

    def reopen(self, key: str) -> None:
        """Allow a key closed by cleanup to get a browser session again."""

        self._closed.discard(key)

    async def _create_session(self, key: str) -> BrowserSession:
        if key in self._closed:
            raise SessionCreationError(f"Browser session {key} was closed by cleanup")
        try:
            browser = await self._ensure_browser()
            context = await browser.new_context(**self.context_options(key))
            await context.add_init_script(STEALTH_SCRIPT)
            page = await context.new_page()
            page.set_default_timeout(self.action_timeout_ms)
        except Exception as exc:  # noqa: BLE001
            raise SessionCreationError(f"Failed to create browser session for {key}: {exc}") from exc
        session = BrowserSession(key=key, context=context, page=page)
        if key in self._closed:
            await session.close()
            raise SessionCreationError(f"Browser session {key} was closed by cleanup")
        self._sessions[key] = session
        LOGGER.info("Created browser session %s", key)
        return session

    async def get_session(self, key: str) -> BrowserSession:
        session = self._sessions.get(key)
        if session is not None:
            return session
        return await self._create_session(key)

    async def is_healthy(self, session: BrowserSession) -> bool:
        """A session is healthy when its page is open and answers a title probe."""

        try:
            if session.page.is_closed():
                return False
            await asyncio.wait_for(session.page.title(), timeout=self.health_timeout)
        except Exception:  # noqa: BLE001
            return False
        return True

    def mark_poisoned(self, key: str) -> None:
        self._poisoned.add(key)

    async def ensure_healthy(self, key: str) -> BrowserSession:
        """Return a live session for ``key``, recovering it when poisoned."""

        session = self._sessions.get(key)
        if session is None:
            session = await self._create_session(key)
            await self._restore_url(session)
            return session
        if key not in self._poisoned and await self.is_healthy(session):
            return session
        return await self.recover(key)

    async def recover(self, key: str) -> BrowserSession:
        LOGGER.warning("Session %s is poisoned, recreating", key)
        self._poisoned.discard(key)
        await self._discard(key)
        session = await self._create_session(key)
        await self._restore_url(session)
        return session

    async def _restore_url(self, session: BrowserSession) -> None:
        url = self._last_urls.get(session.key)
        if not url:
            return
        try:
            await session.page.goto(url, wait_until="domcontentloaded", timeout=self.recovery_timeout_ms)
            LOGGER.info("Restored %s to %s", session.key, url)
        except Exception as exc:  # noqa: BLE001 - the retried action reports the failure
            LOGGER.warning("Could not restore %s to %s: %s", session.key, url, exc)

    async def _discard(self, key: str) -> None:
        session = self._sessions.pop(key, None)
        if session is None:
            return
        try:
            await session.close()
        except Exception as exc:  # noqa: BLE001 - a poisoned session may not close cleanly
            LOGGER.debug("Ignoring close failure for %s: %s", key, exc)

    def record_url(self, key: str, url: Optional[str]) -> None:
        if key in self._closed:
            return
        if url and url != "about:blank":
            self._last_urls[key] = url

    def last_url(self, key: str) -> Optional[str]:
        return self._last_urls.get(key)

    async def close_session(self, key: str) -> bool:
        """Close the session and keep ``key`` closed until it is reopened."""

        self._closed.add(key)
        session = self._sessions.get(key)
        if session is not None and self.storage is not None:
            await self.storage.save(session.context, key)
        existed = session is not None
        await self._discard(key)
        self._last_urls.pop(key, None)
        self._poisoned.discard(key)
        lock = self._locks.get(key)
        if lock is not None and not lock.locked():
            del self._locks[key]
        if existed:
            LOGGER.info("Closed browser session %s", key)
        return existed

    async def close_sessions_with_prefix(self, prefix: str) -> List[str]:
        keys = [key for key in list(self._sessions) if key == prefix or key.startswith(f"{prefix}_")]
        for key in keys:
            await self.close_session(key)
        return keys

    async def shutdown(self) -> None:
        """Close every session, the shared browser, and Playwright."""

        for key in list(self._sessions):
            await self.close_session(key)
        browser, self._browser = self._browser, None
        playwright, self._playwright = self._playwright, None
        try:
            if browser is not None:
                await browser.close()
        finally:
            if playwright is not None:
                await playwright.stop()

    def status(self) -> Dict[str, Any]:
        return {
            "browserConnected": self._browser_alive(),
            "activeSessions": sorted(self._sessions),
            "sessionCount": len(self._sessions),
        }


__all__ = ["BrowserSession", "LAUNCH_ARGS", "STEALTH_SCRIPT", "SessionManager"]
