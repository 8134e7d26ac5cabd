"""Response schema contracts.

Each structured operation declares a pydantic model. The model is sent to
Gemini as ``response_schema`` and is used afterwards to check what came back.
Checking never alters the payload: callers receive the parsed JSON exactly as
the provider emitted it.

Field names follow the wire format (``healthScore``), not Python style.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
import logging
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from health_insight.core.types import Operation
from health_insight.exceptions import IncompleteResponseError, ResponseFormatError

log = logging.getLogger(__name__)

# ruff: noqa: N815


class DiseaseRisk(BaseModel):
    disease: str
    probability: float


class ReportAnalysis(BaseModel):
    """Health analysis of a medical report."""

    summary: str = Field(
        description="A concise, easy-to-understand summary of the medical report's key findings. Maximum 3 sentences."
    )
    predictions: list[DiseaseRisk] = Field(
        description="A list of potential diseases or health issues with their corresponding probability."
    )
    healthScore: int = Field(
        description="A holistic health score from 0 (poor) to 100 (excellent), based on the overall report data."
    )
    recommendations: list[str] = Field(
        description="A list of 3-5 actionable health recommendations or next steps for the user."
    )


class SymptomMatch(BaseModel):
    disease: str = Field(description="Name of the potential disease.")
    probability: float = Field(description="A score from 0.0 to 1.0 indicating likelihood.")
    description: str = Field(
        description="A brief, 1-2 sentence explanation of the disease and why it might match the symptoms."
    )
    specialist: str = Field(
        description="The type of medical specialist to consult for this condition (e.g., Cardiologist, Neurologist)."
    )


class SymptomPrediction(BaseModel):
    predictions: list[SymptomMatch] = Field(
        description="A list of 3-5 potential diseases based on the symptoms, ranked from most to least likely."
    )


class HealthTips(BaseModel):
    tips: list[str] = Field(
        description="A list of 3-4 concise, actionable, and personalized health tips."
    )


@dataclass(frozen=True, slots=True)
class ResponseContract:
    operation: Operation
    schema: type[BaseModel]

    @property
    def required(self) -> tuple[str, ...]:
        return tuple(
            name for name, info in self.schema.model_fields.items() if info.is_required()
        )

    def parse(self, text: str | None) -> dict[str, Any]:
        """Trim and parse provider text into a JSON object.

        Raises:
            ResponseFormatError: If the text is empty, not JSON, or not an object.
        """
        label = self.operation.label
        body = (text or "").strip()
        if not body:
            raise ResponseFormatError(label, "The response was empty.")
        try:
            data = json.loads(body)
        except json.JSONDecodeError as e:
            log.error("Unparseable %s response: %s", label, e)
            raise ResponseFormatError(label) from e
        if not isinstance(data, dict):
            raise ResponseFormatError(
                label, f"Expected a JSON object, got {type(data).__name__}."
            )
        return data

    def validate(self, data: dict[str, Any]) -> dict[str, Any]:
        """Check required fields and their shapes; return ``data`` unchanged.

        Raises:
            IncompleteResponseError: If a required field is absent, null, or
                of the wrong shape.
        """
        missing = tuple(name for name in self.required if data.get(name) is None)
        if missing:
            raise IncompleteResponseError(self.operation.label, missing)
        try:
            self.schema.model_validate(data)
        except ValidationError as e:
            bad = tuple(
                dict.fromkeys(".".join(str(p) for p in err["loc"]) for err in e.errors())
            )
            raise IncompleteResponseError(self.operation.label, bad) from e
        return data

    def accept(self, text: str | None) -> dict[str, Any]:
        return self.validate(self.parse(text))


REPORT_CONTRACT = ResponseContract(Operation.REPORT_ANALYSIS, ReportAnalysis)
SYMPTOM_CONTRACT = ResponseContract(Operation.SYMPTOM_PREDICTION, SymptomPrediction)
TIPS_CONTRACT = ResponseContract(Operation.TIPS, HealthTips)
