"""Prompt construction for each operation.

Builders are pure functions of their inputs so the same request always yields
the same outbound text.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from health_insight.constants import EMERGENCY_NUMBERS
from health_insight.core.types import GeoPoint, UserContext

REPORT_PREAMBLE = (
    "Analyze the provided medical report. Based on the data, generate a health "
    "analysis according to the provided JSON schema. The report content is either "
    "in the following text or in the attached PDF file."
)

ASSISTANT_INSTRUCTION = (
    "You are a friendly and helpful AI health assistant providing information "
    "relevant to Nepal. You can answer general health questions. When providing "
    "emergency contact information, use Nepali emergency numbers "
    f"(e.g., {EMERGENCY_NUMBERS}). You are not a doctor and must always remind the "
    "user to consult a healthcare professional for medical advice. Keep your answers "
    "concise and easy to understand."
)

HOSPITAL_SUFFIX = "Provide a brief summary and list them."


def report_prompt(report_text: str | None = None) -> str:
    """Preamble alone for attached files, preamble plus report for text."""
    if report_text is None:
        return REPORT_PREAMBLE
    return f"{REPORT_PREAMBLE}\n\nHere is the report:\n\n{report_text}"


def symptom_prompt(symptoms: str) -> str:
    return (
        "You are an AI Symptom Checker. Analyze the following symptoms and provide a "
        "list of potential diseases. For each disease, include its probability, a "
        "brief description, and the recommended medical specialist. IMPORTANT: This "
        "is for informational purposes only and is not a substitute for professional "
        f'medical advice. Symptoms: "{symptoms}"'
    )


def chat_instruction(user: UserContext | None = None) -> str:
    if user is None:
        return ASSISTANT_INSTRUCTION
    weight = f"{user.weight:g}" if user.weight is not None else "N/A"
    age = user.age if user.age is not None else "N/A"
    return (
        f"{ASSISTANT_INSTRUCTION} Personalize your response for the following user: "
        f"Age: {age}, Weight: {weight}kg. "
        f"Pre-existing conditions: {user.medical_conditions or 'None'}. "
        f"Current symptoms: {user.symptoms or 'None'}."
    )


def speech_prompt(text: str) -> str:
    return f"Say in a calm, reassuring voice: {text}"


def hospital_prompt(point: GeoPoint | None = None, query: str | None = None) -> str:
    if point is not None:
        if query:
            return f"{query}. {HOSPITAL_SUFFIX}"
        return f"What hospitals are nearby my current location? {HOSPITAL_SUFFIX}"
    return f"What hospitals are near {query}? {HOSPITAL_SUFFIX}"


def format_risks(predictions: Any) -> str:
    """Render predictions as ``Disease (NN% risk)``, comma separated."""
    if not isinstance(predictions, list):
        return ""
    rendered = []
    for item in predictions:
        if not isinstance(item, Mapping) or "disease" not in item:
            continue
        try:
            pct = f"{float(item.get('probability', 0)) * 100:.0f}"
        except (TypeError, ValueError):
            pct = "?"
        rendered.append(f"{item['disease']} ({pct}% risk)")
    return ", ".join(rendered)


def tips_prompt(analysis: Mapping[str, Any]) -> str:
    risks = format_risks(analysis.get("predictions")) or "None detected"
    return (
        "Based on the following health summary, generate 3-4 personalized, "
        "actionable, and encouraging health tips.\n"
        "The tips should be directly related to the provided data. Be creative and "
        "helpful.\n\n"
        f"Health Score: {analysis['healthScore']}/100\n"
        f'AI Summary: "{analysis["summary"]}"\n'
        f"Potential Risks: {risks}\n\n"
        "Generate the tips according to the JSON schema."
    )
