"""Step classification from live page signals."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple

UNKNOWN_STEP = "unknown"


@dataclass(frozen=True)
class PageSignals:
    url: str = ""
    title: str = ""
    text: str = ""

    @classmethod
    def from_payload(cls, payload: Dict[str, Any] | None) -> "PageSignals":
        data = payload or {}
        return cls(url=str(data.get("url") or ""), title=str(data.get("title") or ""), text=str(data.get("text") or ""))


@dataclass(frozen=True)
class StepRule:
    """Tokens that identify one logical step; matching is case-insensitive."""

    label: str
    url: Tuple[str, ...] = ()
    title: Tuple[str, ...] = ()
    text: Tuple[str, ...] = ()


@dataclass(frozen=True)
class StepMatch:
    label: str
    source: str
    token: Optional[str] = None

    @property
    def known(self) -> bool:
        return self.label != UNKNOWN_STEP

    def as_payload(self) -> Dict[str, Any]:
        return {"label": self.label, "source": self.source, "token": self.token}


@dataclass
class StepClassifier:
    """Checks every rule's URL tokens, then every rule's title tokens, then body text.

    Within a signal, rules are evaluated in declaration order. With
    ``by_rule`` the loops swap: each rule checks all of its signals before
    the next rule is tried.
    """

    rules: Sequence[StepRule]
    default: str = UNKNOWN_STEP
    sources: Tuple[str, ...] = field(default=("url", "title", "text"))
    by_rule: bool = False

    def classify(self, signals: PageSignals) -> StepMatch:
        values = {"url": signals.url.lower(), "title": signals.title.lower(), "text": signals.text.lower()}
        if self.by_rule:
            pairs = ((rule, source) for rule in self.rules for source in self.sources)
        else:
            pairs = ((rule, source) for source in self.sources for rule in self.rules)
        for rule, source in pairs:
            haystack = values[source]
            if not haystack:
                continue
            for token in getattr(rule, source):
                if token.lower() in haystack:
                    return StepMatch(rule.label, source, token)
        return StepMatch(self.default, "default")


__all__ = ["PageSignals", "StepClassifier", "StepMatch", "StepRule", "UNKNOWN_STEP"]
