from __future__ import annotations

import asyncio
import time
from pathlib import Path

import pytest

from quote_engine.browser import session_manager
from quote_engine.browser.actions import BrowserActions, looks_poisoned
from quote_engine.browser.session_manager import SessionManager
from quote_engine.browser.storage_state import StorageStateStore
from quote_engine.core.errors import SessionCreationError
from quote_engine.utils.artifacts import ArtifactStore

from tests.fakes import FakeBrowser, FakeContext, FakeScreen, FakeSite, browser_factory, make_settings

FORM_URL = "https://quotes.example.com/form"


def _site() -> FakeSite:
    return FakeSite(
        FakeScreen(
            url=FORM_URL,
            title="Quote form",
            body="Enter your ZIP code",
            present={"#zip", "#go", ".price"},
            texts={".price": "$99.00"},
        )
    )


def _actions(tmp_path: Path, browser: FakeBrowser) -> BrowserActions:
    settings = make_settings(tmp_path)
    sessions = SessionManager(settings=settings, browser_factory=browser_factory(browser))
    return BrowserActions(sessions, settings=settings, artifacts=ArtifactStore(tmp_path / "shots"))


def test_closed_page_is_recreated_and_url_restored(tmp_path: Path) -> None:
    browser = FakeBrowser(_site())
    actions = _actions(tmp_path, browser)

    async def _run() -> None:
        assert (await actions.navigate("t1_geico", FORM_URL)).success
        first_page = browser.contexts[0].pages[0]
        first_page.closed = True
        result = await actions.click("t1_geico", "#go")
        assert result.success
        second_page = browser.contexts[1].pages[0]
        assert second_page.history == [FORM_URL]
        assert ("click", "#go", None) in second_page.actions
        assert browser.contexts[0].closed

    asyncio.run(_run())


def test_poisoned_action_retries_once_after_recovery(tmp_path: Path) -> None:
    browser = FakeBrowser(_site())
    actions = _actions(tmp_path, browser)

    async def _run() -> None:
        await actions.navigate("t1_geico", FORM_URL)
        browser.contexts[0].pages[0].poison_on.add("#zip")
        result = await actions.type("t1_geico", "#zip", "60601")
        assert result.success, result.error
        assert len(browser.contexts) == 2
        assert ("fill", "#zip", "60601") in browser.contexts[1].pages[0].actions

    asyncio.run(_run())


def test_missing_element_is_reported_not_raised(tmp_path: Path) -> None:
    browser = FakeBrowser(_site())
    actions = _actions(tmp_path, browser)

    async def _run() -> None:
        await actions.navigate("t1_geico", FORM_URL)
        result = await actions.click("t1_geico", "#absent")
        assert result.failed()
        assert result.error.startswith("click failed:")
        assert await actions.count("t1_geico", "#absent") == 0
        assert not await actions.is_visible("t1_geico", "#absent")
        assert await actions.is_visible("t1_geico", "#go")
        assert len(browser.contexts) == 1

    asyncio.run(_run())


def test_http2_navigation_failure_clears_cookies_and_retries(tmp_path: Path) -> None:
    browser = FakeBrowser(_site())
    actions = _actions(tmp_path, browser)

    async def _run() -> None:
        session = await actions.sessions.get_session("t2_progressive")
        session.page.goto_failures.append(RuntimeError("net::ERR_HTTP2_PROTOCOL_ERROR at " + FORM_URL))
        result = await actions.navigate("t2_progressive", FORM_URL)
        assert result.success
        assert session.context.cookies_cleared == 1
        assert session.page.history == [FORM_URL, FORM_URL]

    asyncio.run(_run())


def test_navigation_gives_up_after_retry_limit(tmp_path: Path) -> None:
    browser = FakeBrowser(_site())
    actions = _actions(tmp_path, browser)

    async def _run() -> None:
        session = await actions.sessions.get_session("t3_geico")
        session.page.goto_failures.extend(RuntimeError("net::ERR_TIMED_OUT") for _ in range(3))
        result = await actions.navigate("t3_geico", FORM_URL)
        assert result.failed()
        assert "ERR_TIMED_OUT" in result.error
        assert len(session.page.history) == actions.retry_limit

    asyncio.run(_run())


def test_page_state_text_and_screenshot(tmp_path: Path) -> None:
    browser = FakeBrowser(_site())
    actions = _actions(tmp_path, browser)

    async def _run() -> None:
        await actions.navigate("t4_statefarm", FORM_URL)
        state = await actions.page_state("t4_statefarm")
        assert state.data == {"url": FORM_URL, "title": "Quote form", "text": "Enter your ZIP code"}
        assert (await actions.extract_text("t4_statefarm", ".price")).data == "$99.00"
        shot = await actions.screenshot("t4_statefarm", "statefarm-unknown-step")
        assert shot.success
        assert Path(shot.data).exists()
        assert Path(shot.data).parent.name == "t4_statefarm"
        assert await actions.current_url("t4_statefarm") == FORM_URL

    asyncio.run(_run())


def test_sessions_are_isolated_per_key(tmp_path: Path) -> None:
    browser = FakeBrowser(_site())
    actions = _actions(tmp_path, browser)

    async def _run() -> None:
        await actions.navigate("t5_geico", FORM_URL)
        await actions.navigate("t5_statefarm", FORM_URL)
        assert len(browser.contexts) == 2
        assert actions.sessions.status()["activeSessions"] == ["t5_geico", "t5_statefarm"]
        closed = await actions.sessions.close_sessions_with_prefix("t5")
        assert sorted(closed) == ["t5_geico", "t5_statefarm"]
        assert all(context.closed for context in browser.contexts)
        await actions.sessions.shutdown()
        assert not browser.connected

    asyncio.run(_run())


def test_poison_markers() -> None:
    assert looks_poisoned(RuntimeError("Target page, context or browser has been closed"))
    assert looks_poisoned(RuntimeError("Target closed"))
    assert not looks_poisoned(TimeoutError("Timeout 5000ms exceeded"))


def test_storage_state_store_round_trip(tmp_path: Path) -> None:
    store = StorageStateStore(tmp_path / "states", retention_hours=1)
    context = FakeContext(FakeBrowser(), {})
    path = asyncio.run(store.save(context, "t6_geico"))
    assert path is not None and path.name == "t6_geico-state.json"
    assert store.load("t6_geico") == str(path)
    assert store.purge_expired(now=time.time() + 7200) == [path]
    assert store.load("t6_geico") is None
    disabled = StorageStateStore(tmp_path / "states", enabled=False)
    assert asyncio.run(disabled.save(context, "t6_geico")) is None


def test_stored_state_is_passed_to_new_contexts(tmp_path: Path) -> None:
    store = StorageStateStore(tmp_path / "states")
    asyncio.run(store.save(FakeContext(FakeBrowser(), {}), "t7_geico"))
    browser = FakeBrowser(_site())
    sessions = SessionManager(settings=make_settings(tmp_path), browser_factory=browser_factory(browser), storage=store)
    asyncio.run(sessions.get_session("t7_geico"))
    assert browser.contexts[0].options["storage_state"] == str(store.path_for("t7_geico"))
    assert browser.contexts[0].init_scripts


def test_closed_key_gets_no_new_context_until_reopened(tmp_path: Path) -> None:
    browser = FakeBrowser(_site())
    actions = _actions(tmp_path, browser)

    async def _run() -> None:
        await actions.navigate("t8_geico", FORM_URL)
        assert await actions.sessions.close_session("t8_geico")
        assert actions.sessions.is_closed("t8_geico")
        result = await actions.click("t8_geico", "#go")
        assert not result.success
        assert "closed by cleanup" in result.error
        assert len(browser.contexts) == 1
        actions.sessions.reopen("t8_geico")
        assert (await actions.navigate("t8_geico", FORM_URL)).success
        assert len(browser.contexts) == 2
        assert not browser.contexts[1].closed

    asyncio.run(_run())


class _FailingChromium:
    async def launch(self, **_: object) -> None:
        raise RuntimeError("Executable doesn't exist")


class _FakeDriver:
    def __init__(self) -> None:
        self.chromium = _FailingChromium()
        self.stopped = 0

    async def stop(self) -> None:
        self.stopped += 1


def test_failed_launch_stops_playwright(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    drivers: list[_FakeDriver] = []

    class _Starter:
        async def start(self) -> _FakeDriver:
            driver = _FakeDriver()
            drivers.append(driver)
            return driver

    monkeypatch.setattr(session_manager, "async_playwright", _Starter)
    sessions = SessionManager(settings=make_settings(tmp_path))

    async def _run() -> None:
        for _ in range(2):
            with pytest.raises(SessionCreationError, match="Executable doesn't exist"):
                await sessions.get_session("t9_geico")

    asyncio.run(_run())

    assert [driver.stopped for driver in drivers] == [1, 1]
    assert sessions.status()["browserConnected"] is False
