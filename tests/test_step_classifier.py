from __future__ import annotations

from quote_engine.carriers import GeicoAgent, LibertyMutualAgent, ProgressiveAgent, StateFarmAgent
from quote_engine.carriers.libertymutual import INTERVIEW_CLASSIFIER
from quote_engine.carriers.steps import PageSignals, StepClassifier, StepRule


def test_url_signal_outranks_title_of_an_earlier_rule() -> None:
    classifier = StepClassifier(
        rules=(StepRule("vehicle", title=("vehicle",)), StepRule("driver", url=("/driver",))),
        sources=("url", "title"),
    )
    match = classifier.classify(PageSignals(url="https://x.test/driver", title="Vehicle details"))
    assert (match.label, match.source, match.token) == ("driver", "url", "/driver")


def test_rule_order_breaks_ties_within_a_signal() -> None:
    classifier = StepClassifier(rules=(StepRule("first", text=("quote",)), StepRule("second", text=("quote",))))
    assert classifier.classify(PageSignals(text="Your QUOTE is ready")).label == "first"


def test_unmatched_page_falls_back_to_default() -> None:
    match = StateFarmAgent.classifier.classify(PageSignals(url="https://www.statefarm.com/maintenance"))
    assert not match.known
    assert match.as_payload() == {"label": "unknown", "source": "default", "token": None}


def test_statefarm_rates_beats_quote_prefix() -> None:
    url = "https://www.statefarm.com/quote/auto/rates"
    assert StateFarmAgent.classifier.classify(PageSignals(url=url)).label == "quote_results"
    assert StateFarmAgent.classifier.classify(PageSignals(url="https://www.statefarm.com/quote/x")).label == "personal_info"


def test_progressive_url_slugs() -> None:
    base = "https://autoinsurance5.progressive.com/0/UQA/Quote/"
    expected = {
        "NameEdit": "personal_info",
        "AddressEdit": "address_info",
        "VehiclesAllEdit": "vehicle_info",
        "DriversAddPniDetails": "driver_details",
        "FinalDetailsEdit": "final_details",
        "Bundle": "bundle_options",
        "Rates": "quote_results",
    }
    for slug, label in expected.items():
        assert ProgressiveAgent.classifier.classify(PageSignals(url=base + slug)).label == label


def test_geico_checks_quote_results_first() -> None:
    signals = PageSignals(url="https://sales.geico.com/quote-results/vehicle", title="Vehicle")
    assert GeicoAgent.classifier.classify(signals).label == "quote_results"


def test_liberty_interview_uses_page_text_with_personal_default() -> None:
    assert INTERVIEW_CLASSIFIER.classify(PageSignals(text="Which Vehicle do you drive?")).label == "vehicle"
    assert INTERVIEW_CLASSIFIER.classify(PageSignals(text="Welcome back")).label == "personal_info"
    legacy = LibertyMutualAgent.classifier.classify(PageSignals(url="https://x.test/address", text="Home address"))
    assert legacy.label == "address"


def test_by_rule_checks_every_signal_of_a_rule_before_the_next_rule() -> None:
    rules = (StepRule("vehicle", url=("/vehicle",), text=("vehicle",)), StepRule("address", text=("address",)))
    signals = PageSignals(url="https://x.test/vehicle-info", text="Home address")
    assert StepClassifier(rules=rules, sources=("text", "url")).classify(signals).label == "address"
    match = StepClassifier(rules=rules, sources=("text", "url"), by_rule=True).classify(signals)
    assert (match.label, match.source, match.token) == ("vehicle", "url", "/vehicle")


def test_liberty_legacy_pages_match_on_url_when_text_names_a_later_step() -> None:
    signals = PageSignals(url="https://www.libertymutual.com/quote/vehicle-info", text="Home address")
    match = LibertyMutualAgent.classifier.classify(signals)
    assert (match.label, match.source) == ("vehicle", "url")
