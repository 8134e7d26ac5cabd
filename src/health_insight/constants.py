"""
Project-wide constants for the health insight service
"""  # noqa: D200, D212, D415

# ==============================================================================
# Models
# ==============================================================================

DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_FALLBACK_MODEL = "gemini-2.0-flash"
DEFAULT_TTS_MODEL = "gemini-2.5-flash-preview-tts"
DEFAULT_VOICE_NAME = "Kore"

# ==============================================================================
# Retry and escalation
# ==============================================================================

RETRY_ATTEMPTS = 3
PATIENT_RETRY_ATTEMPTS = 5
RETRY_BASE_DELAY = 1.0  # seconds
PATIENT_RETRY_JITTER = 0.25  # seconds
BACKOFF_MULTIPLIER = 2.0

SERVER_ERROR_MIN = 500
SERVER_ERROR_MAX = 599
SERVICE_UNAVAILABLE = 503

# ==============================================================================
# Content
# ==============================================================================

JSON_MIME_TYPE = "application/json"
AUDIO_MODALITY = "AUDIO"
MAX_REQUEST_BYTES = 10 * 1024 * 1024  # inline uploads accepted by the HTTP layer

DEFAULT_HOSPITAL_SUMMARY = "Here are some hospitals found near your location."
EMERGENCY_NUMBERS = "Police: 100, Ambulance: 102"
