"""Browser primitives that report failures as results instead of raising."""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from quote_engine.core.errors import SessionCreationError
from quote_engine.discovery.field_discovery import SYNTHETIC_REF_ATTR
from quote_engine.utils.artifacts import ArtifactStore

from .session_manager import SessionManager

LOGGER = logging.getLogger(__name__)

SNAPSHOT_LIMIT = 2000

_POISON_MARKERS = (
    "target closed",
    "target page, context or browser has been closed",
    "page has been closed",
    "browser has been closed",
    "context has been closed",
    "connection closed",
    "browser has disconnected",
)
_HTTP2_MARKERS = ("err_http2_protocol_error", "http2")
_SYNTHETIC_REF = re.compile(r"^e\d+$")

SNAPSHOT_SCRIPT = """
([limit, refAttr]) => {
  const nodes = Array.from(document.querySelectorAll('input, select, textarea, button, a')).slice(0, limit);
  return nodes.map((el, idx) => {
    const attributes = {};
    for (const attr of Array.from(el.attributes)) {
      attributes[attr.name] = attr.value;
    }
    let ref = el.getAttribute('data-testid') || el.id;
    if (!ref) {
      ref = `e${idx}`;
      el.setAttribute(refAttr, ref);
    }
    const labels = el.labels ? Array.from(el.labels).map((label) => label.innerText || '') : [];
    const parts = [el.innerText || '', ...labels, el.getAttribute('aria-label') || ''];
    if (el.tagName === 'INPUT' && ['submit', 'button'].includes((el.type || '').toLowerCase())) {
      parts.push(el.value || '');
    }
    const text = parts.join(' ').replace(/\\s+/g, ' ').trim();
    return { tag: el.tagName.toLowerCase(), text, attributes, ref };
  });
}
"""

PageOperation = Callable[[Any], Awaitable[Any]]


@dataclass
class ActionResult:
    success: bool
    data: Any = None
    error: Optional[str] = None

    def failed(self) -> bool:
        return not self.success

    def as_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"success": self.success}
        if self.data is not None:
            payload["data"] = self.data
        if self.error:
            payload["error"] = self.error
        return payload


def resolve_selector(selector: str) -> str:
    """Translate bare snapshot refs (``e12``) into attribute selectors."""

    value = selector.strip()
    if _SYNTHETIC_REF.match(value):
        return f'[{SYNTHETIC_REF_ATTR}="{value}"]'
    return value


def looks_poisoned(exc: BaseException) -> bool:
    message = str(exc).lower()
    return any(marker in message for marker in _POISON_MARKERS)


def _page_url(page: Any) -> Optional[str]:
    try:
        return str(page.url)
    except Exception:  # noqa: BLE001
        return None


class BrowserActions:
    """Short-lived operations against the page bound to a session key."""

    def __init__(
        self,
        sessions: SessionManager,
        *,
        settings: Dict[str, Any] | None = None,
        artifacts: ArtifactStore | None = None,
    ) -> None:
        config = settings or {}
        timeouts = config.get("timeouts", {})
        retry = config.get("retry", {})
        self.sessions = sessions
        self.artifacts = artifacts or ArtifactStore(enabled=False)
        self.navigation_timeout_ms = int(timeouts.get("navigation_ms", 90000))
        self.action_timeout_ms = int(timeouts.get("action_ms", 5000))
        self.fast_click_timeout_ms = int(timeouts.get("fast_click_ms", 800))
        self.wait_timeout_ms = int(timeouts.get("wait_ms", 30000))
        self.retry_limit = int(retry.get("limit", 3))
        self.backoff_seconds = float(retry.get("backoff_seconds", 0.25))

    async def _run(self, key: str, name: str, operation: PageOperation) -> ActionResult:
        """Execute ``operation`` on a healthy page, retrying once after poisoning."""

        for attempt in (1, 2):
            try:
                session = await self.sessions.ensure_healthy(key)
            except SessionCreationError as exc:
                LOGGER.error("%s aborted for %s: %s", name, key, exc)
                return ActionResult(False, error=str(exc))
            try:
                data = await operation(session.page)
            except Exception as exc:  # noqa: BLE001
                if attempt == 1 and looks_poisoned(exc):
                    LOGGER.warning("%s hit a poisoned session %s, retrying after recovery", name, key)
                    self.sessions.mark_poisoned(key)
                    continue
                LOGGER.debug("%s failed for %s: %s", name, key, exc)
                return ActionResult(False, error=f"{name} failed: {exc}")
            self.sessions.record_url(key, _page_url(session.page))
            return ActionResult(True, data=data)
        return ActionResult(False, error=f"{name} failed: session could not be recovered")

    async def navigate(self, key: str, url: str) -> ActionResult:
        """Load ``url`` waiting only for DOM readiness, with bounded retries."""

        async def _goto(page: Any) -> Optional[str]:
            await page.goto(url, wait_until="domcontentloaded", timeout=self.navigation_timeout_ms)
            return _page_url(page)

        result = ActionResult(False, error=f"navigate failed: {url}")
        for attempt in range(1, self.retry_limit + 1):
            result = await self._run(key, "navigate", _goto)
            if result.success:
                LOGGER.info("Navigated %s to %s", key, result.data)
                return result
            LOGGER.warning("Navigation attempt %d/%d for %s failed: %s", attempt, self.retry_limit, key, result.error)
            if any(marker in (result.error or "").lower() for marker in _HTTP2_MARKERS):
                await self.clear_cookies(key)
            if attempt < self.retry_limit:
                await asyncio.sleep(self.backoff_seconds * attempt)
        return result

    async def click(self, key: str, selector: str, *, timeout: int | None = None) -> ActionResult:
        target = resolve_selector(selector)

        async def _click(page: Any) -> str:
            await page.locator(target).first.click(timeout=timeout or self.action_timeout_ms)
            return target

        return await self._run(key, "click", _click)

    async def fast_click(self, key: str, selector: str) -> ActionResult:
        """Optimistic click with a sub-second timeout."""

        return await self.click(key, selector, timeout=self.fast_click_timeout_ms)

    async def type(
        self,
        key: str,
        selector: str,
        text: str,
        *,
        slowly: bool = False,
        submit: bool = False,
        timeout: int | None = None,
    ) -> ActionResult:
        target = resolve_selector(selector)
        value = str(text)

        async def _type(page: Any) -> str:
            locator = page.locator(target).first
            wait_ms = timeout or self.action_timeout_ms
            if slowly:
                await locator.click(timeout=wait_ms)
                await locator.press_sequentially(value, delay=50, timeout=wait_ms)
            else:
                await locator.fill(value, timeout=wait_ms)
            if submit:
                await locator.press("Enter", timeout=wait_ms)
            return target

        return await self._run(key, "type", _type)

    async def select_option(self, key: str, selector: str, value: str, *, timeout: int | None = None) -> ActionResult:
        target = resolve_selector(selector)

        async def _select(page: Any) -> List[str]:
            locator = page.locator(target).first
            wait_ms = timeout or self.action_timeout_ms
            try:
                return await locator.select_option(value=str(value), timeout=wait_ms)
            except Exception:  # noqa: BLE001 - retry by visible label
                return await locator.select_option(label=str(value), timeout=wait_ms)

        return await self._run(key, "select_option", _select)

    async def check(self, key: str, selector: str, *, timeout: int | None = None) -> ActionResult:
        target = resolve_selector(selector)

        async def _check(page: Any) -> str:
            await page.locator(target).first.check(timeout=timeout or self.action_timeout_ms)
            return target

        return await self._run(key, "check", _check)

    async def wait_for(
        self,
        key: str,
        *,
        text: str | None = None,
        text_gone: str | None = None,
        time: float | None = None,
        timeout: int | None = None,
    ) -> ActionResult:
        """Wait for literal text to appear or disappear, or for a fixed duration."""

        wait_ms = timeout or self.wait_timeout_ms

        async def _wait(page: Any) -> Dict[str, Any]:
            if time is not None:
                await asyncio.sleep(float(time))
            if text:
                await page.get_by_text(text).first.wait_for(state="visible", timeout=wait_ms)
            if text_gone:
                await page.get_by_text(text_gone).first.wait_for(state="hidden", timeout=wait_ms)
            return {"text": text, "textGone": text_gone, "time": time}

        return await self._run(key, "wait_for", _wait)

    async def is_visible(self, key: str, selector: str, *, timeout: int | None = None) -> bool:
        target = resolve_selector(selector)

        async def _visible(page: Any) -> bool:
            locator = page.locator(target).first
            try:
                await locator.wait_for(state="visible", timeout=timeout or self.fast_click_timeout_ms)
            except Exception:  # noqa: BLE001 - absence is an answer, not a failure
                return False
            return True

        result = await self._run(key, "is_visible", _visible)
        return bool(result.success and result.data)

    async def count(self, key: str, selector: str) -> int:
        target = resolve_selector(selector)

        async def _count(page: Any) -> int:
            return await page.locator(target).count()

        result = await self._run(key, "count", _count)
        return int(result.data or 0) if result.success else 0

    async def extract_text(self, key: str, selector: str, *, timeout: int | None = None) -> ActionResult:
        target = resolve_selector(selector)

        async def _text(page: Any) -> str:
            content = await page.locator(target).first.text_content(timeout=timeout or self.action_timeout_ms)
            return (content or "").strip()

        return await self._run(key, "extract_text", _text)

    async def snapshot(self, key: str, *, limit: int = SNAPSHOT_LIMIT) -> ActionResult:
        """Serialize interactive elements into ``{tag, text, attributes, ref}`` records."""

        async def _snapshot(page: Any) -> List[Dict[str, Any]]:
            return await page.evaluate(SNAPSHOT_SCRIPT, [limit, SYNTHETIC_REF_ATTR])

        return await self._run(key, "snapshot", _snapshot)

    async def screenshot(self, key: str, name: str = "screenshot") -> ActionResult:
        async def _capture(page: Any) -> Optional[str]:
            payload = await page.screenshot(full_page=True)
            path = self.artifacts.save_screenshot(key, payload, name=name)
            return str(path) if path else None

        result = await self._run(key, "screenshot", _capture)
        if result.success and result.data:
            LOGGER.info("Screenshot for %s saved to %s", key, result.data)
        return result

    async def page_state(self, key: str) -> ActionResult:
        """Current URL, title and body text for step classification."""

        async def _state(page: Any) -> Dict[str, str]:
            title = await page.title()
            body = await page.locator("body").first.inner_text(timeout=self.action_timeout_ms)
            return {"url": _page_url(page) or "", "title": title or "", "text": body or ""}

        return await self._run(key, "page_state", _state)

    async def current_url(self, key: str) -> Optional[str]:
        async def _url(page: Any) -> Optional[str]:
            return _page_url(page)

        result = await self._run(key, "current_url", _url)
        return result.data if result.success else self.sessions.last_url(key)

    async def clear_cookies(self, key: str) -> ActionResult:
        async def _clear(page: Any) -> bool:
            await page.context.clear_cookies()
            return True

        return await self._run(key, "clear_cookies", _clear)


__all__ = ["ActionResult", "BrowserActions", "SNAPSHOT_SCRIPT", "looks_poisoned", "resolve_selector"]
