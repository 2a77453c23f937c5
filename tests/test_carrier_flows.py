from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Tuple

from quote_engine.browser.actions import BrowserActions
from quote_engine.browser.session_manager import SessionManager
from quote_engine.carriers import (
    CarrierContext,
    FieldFill,
    GeicoAgent,
    LibertyMutualAgent,
    ProgressiveAgent,
    StateFarmAgent,
    flatten_user_data,
    parse_amount,
)
from quote_engine.carriers.libertymutual import DIRECT_QUOTE_URL
from quote_engine.carriers.statefarm import ADDRESS_PROBE, VEHICLE_PROBE
from quote_engine.carriers.steps import PageSignals
from quote_engine.utils.artifacts import ArtifactStore

from tests.fakes import (
    PROGRESSIVE_NAME,
    STATEFARM_HOME,
    STATEFARM_QUOTE,
    FakeBrowser,
    FakeScreen,
    FakeSite,
    browser_factory,
    carrier_site,
    make_settings,
)

STATEFARM_VEHICLE = "https://www.statefarm.com/quote/auto/vehicle"
STATEFARM_COVERAGE = "https://www.statefarm.com/quote/auto/coverage"
STATEFARM_RATES = "https://www.statefarm.com/quote/auto/rates"
PROGRESSIVE_BUNDLE = "https://autoinsurance5.progressive.com/0/UQA/Quote/Bundle"
PROGRESSIVE_RATES = "https://autoinsurance5.progressive.com/0/UQA/Quote/Rates"
LIBERTY_HOME = "https://www.libertymutual.com/auto-insurance"
GEICO_HOME = "https://www.geico.com/auto-insurance/"
GEICO_ABOUT_YOU = "https://sales.geico.com/quote/about-you"
GEICO_ADDRESS = "https://sales.geico.com/quote/address"


def _actions(tmp_path: Path, site: FakeSite) -> Tuple[BrowserActions, FakeBrowser]:
    browser = FakeBrowser(site)
    settings = make_settings(tmp_path)
    sessions = SessionManager(settings=settings, browser_factory=browser_factory(browser))
    return BrowserActions(sessions, settings=settings, artifacts=ArtifactStore(tmp_path / "shots")), browser


def _statefarm_site() -> FakeSite:
    site = carrier_site()
    site.add(
        FakeScreen(
            url=STATEFARM_QUOTE,
            title="Tell us about you",
            body="First name Last name Date of birth",
            present={
                'input[name*="first" i]',
                'input[name*="last" i]',
                'input[name*="birth" i]',
                'button:has-text("Continue")',
            },
            snapshot=[{"tag": "input", "attributes": {"name": "firstName"}, "text": "First name"}],
            transitions={'button:has-text("Continue")': STATEFARM_VEHICLE},
        )
    )
    site.add(FakeScreen(url=STATEFARM_VEHICLE, title="Vehicle", body="Tell us about your vehicle"))
    site.add(
        FakeScreen(
            url=STATEFARM_COVERAGE,
            title="Coverage",
            body="Choose your coverage",
            present={'button:has-text("Continue")'},
            transitions={'button:has-text("Continue")': STATEFARM_RATES},
        )
    )
    site.add(
        FakeScreen(
            url=STATEFARM_RATES,
            title="Your rates",
            body="Here is your quote",
            present={'[data-testid*="premium"]'},
            texts={'[data-testid*="premium"]': "$118.40/mo"},
        )
    )
    return site


def _context(carrier: str, **data: object) -> CarrierContext:
    return CarrierContext(task_id="task_1_abcdefg", carrier=carrier, user_data=dict(data))


def test_statefarm_start_with_zip_waits_for_personal_info(tmp_path: Path) -> None:
    actions, browser = _actions(tmp_path, _statefarm_site())
    agent = StateFarmAgent(actions, settle_seconds=0)
    context = _context("statefarm", zipCode="60601")

    response = asyncio.run(agent.start(context))

    assert response["status"] == "waiting_for_input"
    assert list(response["requiredFields"]) == ["firstName", "lastName", "dateOfBirth"]
    assert response["currentStepLabel"] == "personal_info"
    page = browser.contexts[0].pages[0]
    assert page.history == [STATEFARM_HOME]
    assert ("fill", "#quote-main-zip-code-input1", "60601") in page.actions
    assert page.url == STATEFARM_QUOTE
    assert agent.status(context.session_key)["status"] == "waiting_for_input"
    state = agent.states.get(context.session_key)
    assert (state.session_key, state.task_id, state.carrier) == ("task_1_abcdefg_statefarm", "task_1_abcdefg", "statefarm")


def test_statefarm_start_without_zip_is_an_error(tmp_path: Path) -> None:
    actions, browser = _actions(tmp_path, _statefarm_site())
    agent = StateFarmAgent(actions, settle_seconds=0)

    response = asyncio.run(agent.start(_context("statefarm", firstName="Ada")))

    assert response == {
        "status": "error",
        "error": "ZIP code is required to start a State Farm quote.",
        "currentStep": 0,
        "currentStepLabel": "entry",
    }
    assert browser.contexts == []


def test_statefarm_personal_info_step_advances_to_vehicle(tmp_path: Path) -> None:
    actions, browser = _actions(tmp_path, _statefarm_site())
    agent = StateFarmAgent(actions, settle_seconds=0)
    context = _context("statefarm", zipCode="60601")

    async def _run():
        await agent.start(context)
        return await agent.step(context, {"firstName": "Ada", "lastName": "Lovelace", "dateOfBirth": "12/10/1985"})

    response = asyncio.run(_run())

    assert response["status"] == "waiting_for_input"
    assert list(response["requiredFields"]) == ["vehicleYear", "vehicleMake", "vehicleModel"]
    assert response["currentStep"] == 1
    assert response["currentStepLabel"] == "personal_info"
    page = browser.contexts[0].pages[0]
    assert ("fill", 'input[name*="first" i]', "Ada") in page.actions
    assert page.url == STATEFARM_VEHICLE


def test_statefarm_step_without_data_asks_again(tmp_path: Path) -> None:
    actions, browser = _actions(tmp_path, _statefarm_site())
    agent = StateFarmAgent(actions, settle_seconds=0)
    context = _context("statefarm", zipCode="60601")

    async def _run():
        await agent.start(context)
        return await agent.step(context, {"firstName": "Ada"})

    response = asyncio.run(_run())

    assert response["status"] == "waiting_for_input"
    assert set(response["requiredFields"]) == {"lastName", "dateOfBirth"}
    assert browser.contexts[0].pages[0].url == STATEFARM_QUOTE


def test_statefarm_coverage_step_extracts_monthly_quote(tmp_path: Path) -> None:
    actions, _ = _actions(tmp_path, _statefarm_site())
    agent = StateFarmAgent(actions, settle_seconds=0)
    context = _context("statefarm", zipCode="60601")

    async def _run():
        await actions.navigate(context.session_key, STATEFARM_COVERAGE)
        return await agent.step(context, {"acceptDefaultCoverage": True})

    response = asyncio.run(_run())

    assert response["status"] == "completed"
    quote = response["quote"]
    assert quote["price"] == "$118.40/mo"
    assert quote["monthlyPremium"] == 118.4
    assert quote["term"] == "month"
    assert quote["details"]["url"] == STATEFARM_RATES


def test_statefarm_coverage_without_quote_fails(tmp_path: Path) -> None:
    site = _statefarm_site()
    site.screens[STATEFARM_COVERAGE].transitions = {}
    actions, _ = _actions(tmp_path, site)
    agent = StateFarmAgent(actions, settle_seconds=0)
    context = _context("statefarm", zipCode="60601")

    async def _run():
        await actions.navigate(context.session_key, STATEFARM_COVERAGE)
        return await agent.step(context, {"acceptDefaultCoverage": True})

    response = asyncio.run(_run())

    assert response == {
        "status": "error",
        "error": "Could not retrieve quote after coverage selection step.",
        "currentStep": 0,
        "currentStepLabel": "coverage_selection",
    }


def test_unknown_step_reports_url_and_captures_screenshot(tmp_path: Path) -> None:
    site = _statefarm_site()
    maintenance = site.add(FakeScreen(url="https://www.statefarm.com/maintenance", title="Be right back"))
    actions, _ = _actions(tmp_path, site)
    agent = StateFarmAgent(actions, settle_seconds=0)
    context = _context("statefarm", zipCode="60601")

    async def _run():
        await actions.navigate(context.session_key, maintenance.url)
        return await agent.step(context, {})

    response = asyncio.run(_run())

    assert response["status"] == "error"
    assert maintenance.url in response["error"]
    assert agent.status(context.session_key)["status"] == "error"
    shots = list((tmp_path / "shots" / context.session_key).glob("statefarm-unknown-step_*.png"))
    assert len(shots) == 1


def test_statefarm_detects_combined_vehicle_and_address_page(tmp_path: Path) -> None:
    site = _statefarm_site()
    site.add(FakeScreen(url=STATEFARM_VEHICLE, title="Vehicle", present={VEHICLE_PROBE, ADDRESS_PROBE}))
    actions, _ = _actions(tmp_path, site)
    agent = StateFarmAgent(actions, settle_seconds=0)

    async def _run():
        await actions.navigate("k_statefarm", STATEFARM_VEHICLE)
        return await agent.classify_step("k_statefarm", PageSignals(url=STATEFARM_VEHICLE, title="Vehicle"))

    match = asyncio.run(_run())
    assert (match.label, match.source) == ("vehicle_and_address", "dom")


def test_progressive_selects_product_before_zip(tmp_path: Path) -> None:
    actions, browser = _actions(tmp_path, carrier_site())
    agent = ProgressiveAgent(actions, settle_seconds=0)

    response = asyncio.run(agent.start(_context("progressive", zipCode="60601", email="ada@example.com")))

    assert response["status"] == "waiting_for_input"
    assert list(response["requiredFields"]) == ["firstName", "lastName", "dateOfBirth"]
    page = browser.contexts[0].pages[0]
    performed = [(kind, selector) for kind, selector, _ in page.actions]
    assert performed == [
        ("click", 'a[href*="/auto" i]'),
        ("fill", "#zipCode_mma"),
        ("click", "#qsButton_mma"),
    ]
    assert page.url == PROGRESSIVE_NAME


def test_progressive_bundle_auto_only_returns_quote(tmp_path: Path) -> None:
    site = carrier_site()
    site.add(
        FakeScreen(
            url=PROGRESSIVE_BUNDLE,
            title="Bundle and save",
            present={'button:has-text("No thanks")'},
            transitions={'button:has-text("No thanks")': PROGRESSIVE_RATES},
        )
    )
    site.add(
        FakeScreen(
            url=PROGRESSIVE_RATES,
            title="Your rates",
            present={'[data-qu-id="price"]'},
            texts={'[data-qu-id="price"]': "$642.00"},
        )
    )
    actions, _ = _actions(tmp_path, site)
    agent = ProgressiveAgent(actions, settle_seconds=0)
    context = _context("progressive", zipCode="60601")

    async def _run():
        await actions.navigate(context.session_key, PROGRESSIVE_BUNDLE)
        return await agent.step(context, {"bundleChoice": "auto_only"})

    response = asyncio.run(_run())

    assert response["status"] == "completed"
    assert response["quote"]["term"] == "6-Month"
    assert response["quote"]["monthlyPremium"] is None
    assert response["quote"]["details"]["amount"] == 642.0
    assert response["currentStepLabel"] == "bundle_options"


def test_liberty_mutual_uses_direct_url_without_zip_input(tmp_path: Path) -> None:
    site = FakeSite(FakeScreen(url=LIBERTY_HOME, title="Auto Insurance", body="Liberty Mutual"))
    actions, browser = _actions(tmp_path, site)
    agent = LibertyMutualAgent(actions, settle_seconds=0)

    response = asyncio.run(agent.start(_context("libertymutual", zipCode="60601")))

    assert response["status"] == "waiting_for_input"
    page = browser.contexts[0].pages[0]
    assert page.history == [LIBERTY_HOME, f"{DIRECT_QUOTE_URL}?lob=Auto&policyType=Auto&zipCode=60601"]


def test_carrier_cleanup_closes_session_and_resets_status(tmp_path: Path) -> None:
    actions, browser = _actions(tmp_path, _statefarm_site())
    agent = StateFarmAgent(actions, settle_seconds=0)
    context = _context("statefarm", zipCode="60601")

    async def _run():
        await agent.start(context)
        return await agent.cleanup(context.session_key)

    assert asyncio.run(_run()) == {"success": True}
    assert browser.contexts[0].closed
    assert agent.status(context.session_key) == {"status": "inactive", "currentStep": 0, "currentStepLabel": "entry"}


def test_flatten_user_data_lifts_first_vehicle_and_address() -> None:
    flat = flatten_user_data(
        {
            "vehicles": [{"vehicleYear": "2019", "vehicleMake": "Honda"}, {"vehicleYear": "2001"}],
            "address": {"street": "1 Main St", "city": "Chicago"},
            "city": "Springfield",
        }
    )
    assert flat["vehicleYear"] == "2019"
    assert flat["streetAddress"] == "1 Main St"
    assert flat["city"] == "Springfield"


def test_parse_amount() -> None:
    assert parse_amount("Total $1,234.50 for 6 months") == 1234.5
    assert parse_amount("$89/mo") == 89.0
    assert parse_amount("call us") is None


def _geico_site() -> FakeSite:
    return FakeSite(
        FakeScreen(
            url=GEICO_HOME,
            title="Auto Insurance",
            body="Get a quote",
            present={'input[name="zip"]', 'button:has-text("Start My Quote")'},
            transitions={'button:has-text("Start My Quote")': GEICO_ABOUT_YOU},
        ),
        FakeScreen(
            url=GEICO_ABOUT_YOU,
            title="Tell us about you",
            body="Date of birth First name Last name",
            present={
                'input[name="dateOfBirth"]',
                'input[name="firstName"]',
                'input[name="lastName"]',
                'button[type="submit"]',
            },
            transitions={'button[type="submit"]': GEICO_ADDRESS},
        ),
        FakeScreen(url=GEICO_ADDRESS, title="Address", body="Street address"),
    )


def test_geico_start_and_personal_info_step(tmp_path: Path) -> None:
    actions, browser = _actions(tmp_path, _geico_site())
    agent = GeicoAgent(actions, settle_seconds=0)
    context = _context("geico", zipCode="20001")

    async def _run():
        started = await agent.start(context)
        stepped = await agent.step(context, {"dateOfBirth": "01/02/1990", "firstName": "Ada", "lastName": "Lovelace"})
        return started, stepped

    started, stepped = asyncio.run(_run())

    assert started["status"] == "waiting_for_input"
    assert list(started["requiredFields"]) == ["dateOfBirth", "firstName", "lastName"]
    assert started["currentStepLabel"] == "personal_info"
    assert stepped["status"] == "waiting_for_input"
    assert list(stepped["requiredFields"]) == ["streetAddress", "apt"]
    assert stepped["currentStep"] == 1
    page = browser.contexts[0].pages[0]
    assert ("fill", 'input[name="zip"]', "20001") in page.actions
    assert ("fill", 'input[name="dateOfBirth"]', "01/02/1990") in page.actions
    assert ("click", 'button[type="submit"]', None) in page.actions
    assert page.url == GEICO_ADDRESS


def test_checkbox_fill_ticks_only_affirmative_answers(tmp_path: Path) -> None:
    site = FakeSite(FakeScreen(url=GEICO_HOME, present={"#anti-theft"}))
    actions, browser = _actions(tmp_path, site)
    agent = GeicoAgent(actions, settle_seconds=0)
    fill = FieldFill("antiTheftDevice", None, ("#anti-theft",), kind="check")

    async def _run():
        await actions.navigate("t9_geico", GEICO_HOME)
        ticked = await agent.fill_field("t9_geico", fill, {"antiTheftDevice": "Yes"})
        skipped = await agent.fill_field("t9_geico", fill, {"antiTheftDevice": "No"})
        return ticked, skipped

    ticked, skipped = asyncio.run(_run())

    assert (ticked, skipped) == (True, False)
    assert browser.contexts[0].pages[0].actions == [("check", "#anti-theft", None)]


def test_liberty_mutual_zip_that_cannot_be_typed_is_an_error(tmp_path: Path) -> None:
    zip_input = 'input[name*="zip" i]'
    site = FakeSite(
        FakeScreen(
            url=LIBERTY_HOME,
            title="Auto Insurance",
            body="Liberty Mutual",
            present={zip_input, 'button:has-text("Get my price")'},
            readonly={zip_input},
        )
    )
    actions, browser = _actions(tmp_path, site)
    agent = LibertyMutualAgent(actions, settle_seconds=0)

    response = asyncio.run(agent.start(_context("libertymutual", zipCode="60601")))

    assert response["status"] == "error"
    assert response["error"].startswith("Could not enter ZIP code: ")
    assert "not editable" in response["error"]
    page = browser.contexts[0].pages[0]
    assert ("click", 'button:has-text("Get my price")', None) not in page.actions
    assert page.history == [LIBERTY_HOME]
