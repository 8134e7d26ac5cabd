"""Request and response bodies for the HTTP surface.

Field names mirror the JSON the web client sends (camelCase).
"""

from typing import Literal

from pydantic import BaseModel, Field

from health_insight.core.types import ChatTurn, InlineData, VoiceConfig

# ruff: noqa: N815


class FileData(BaseModel):
    data: str = Field(min_length=1, description="Base64 encoded file content")
    mimeType: str = Field(min_length=1)

    def to_inline(self) -> InlineData:
        return InlineData(data=self.data, mime_type=self.mimeType)


class AnalyzeRequest(BaseModel):
    reportText: str | None = None
    fileData: FileData | None = None


class HistoryPart(BaseModel):
    text: str = ""


class HistoryMessage(BaseModel):
    role: Literal["user", "model"]
    parts: list[HistoryPart] = Field(default_factory=list)

    def to_turn(self) -> ChatTurn:
        return ChatTurn(role=self.role, text="".join(p.text for p in self.parts))


class VoiceSettings(BaseModel):
    enabled: bool = True
    voiceName: str | None = None

    def to_voice(self, default_voice: str) -> VoiceConfig | None:
        if not self.enabled:
            return None
        return VoiceConfig(self.voiceName or default_voice)


class ChatRequest(BaseModel):
    message: str | None = None
    history: list[HistoryMessage] = Field(default_factory=list)
    voiceConfig: VoiceSettings | None = None


class ChatResponse(BaseModel):
    response: str
    audio: str | None = None


class SymptomRequest(BaseModel):
    symptoms: str | None = None


class HospitalRequest(BaseModel):
    lat: float | None = None
    lon: float | None = None
    query: str | None = None


class Hospital(BaseModel):
    name: str
    uri: str


class HospitalListing(BaseModel):
    """Hospital lookup result assembled from maps grounding."""

    summary: str
    hospitals: list[Hospital]


class TipsRequest(BaseModel):
    analysis: dict | None = None


class TipsResponse(BaseModel):
    tips: list[str]


class ErrorResponse(BaseModel):
    error: str
