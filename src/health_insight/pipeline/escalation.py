"""Declarative primary/fallback model escalation.

A rule maps a set of provider statuses to a fallback model. The pipeline
consults the policy once, after the retry wrapper has given up on the primary
model, and issues a single un-retried call against the fallback.
"""

from __future__ import annotations

from dataclasses import dataclass

from health_insight.constants import SERVICE_UNAVAILABLE

from .retry import status_of


@dataclass(frozen=True, slots=True)
class EscalationRule:
    fallback_model: str
    statuses: frozenset[int] = frozenset({SERVICE_UNAVAILABLE})

    def matches(self, error: BaseException) -> bool:
        return status_of(error) in self.statuses


@dataclass(frozen=True, slots=True)
class EscalationPolicy:
    rules: tuple[EscalationRule, ...] = ()

    @classmethod
    def on_unavailable(cls, fallback_model: str) -> EscalationPolicy:
        """Fall back to ``fallback_model`` when the primary reports 503."""
        return cls(rules=(EscalationRule(fallback_model=fallback_model),))

    def fallback_for(self, error: BaseException) -> str | None:
        """First matching rule's fallback model, or None."""
        for rule in self.rules:
            if rule.matches(error):
                return rule.fallback_model
        return None
