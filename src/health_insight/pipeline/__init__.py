"""Resilient request pipeline for Gemini-backed operations."""

from .contracts import (
    REPORT_CONTRACT,
    SYMPTOM_CONTRACT,
    TIPS_CONTRACT,
    ResponseContract,
)
from .escalation import EscalationPolicy, EscalationRule
from .handler import RequestPipeline, translate_provider_error
from .retry import RetryPolicy, is_server_error, retry_with_backoff, status_of

__all__ = [
    "REPORT_CONTRACT",
    "SYMPTOM_CONTRACT",
    "TIPS_CONTRACT",
    "EscalationPolicy",
    "EscalationRule",
    "RequestPipeline",
    "ResponseContract",
    "RetryPolicy",
    "is_server_error",
    "retry_with_backoff",
    "status_of",
    "translate_provider_error",
]
