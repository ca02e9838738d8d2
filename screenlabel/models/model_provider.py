"""Models exchanged between the router, its providers and callers."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from screenlabel.models.model_classification import ClassificationResult

# === Enums ===


class AiMode(str, Enum):
    """Which classification backends the user allows."""

    OFF = "off"
    LOCAL = "local"
    CLOUD = "cloud"
    HYBRID = "hybrid"


# === Inputs ===


class ScreenContext(BaseModel):
    """Metadata about the window a screenshot was taken from."""

    model_config = ConfigDict(frozen=True)

    app_bundle_id: str | None = None
    app_name: str | None = None
    window_title: str | None = None
    url_host: str | None = None
    content_kind: str | None = None
    content_title: str | None = None
    user_caption: str | None = None
    selected_project: str | None = None


class ClassificationInput(BaseModel):
    """Everything known about one capture at classification time."""

    model_config = ConfigDict(frozen=True)

    image_base64: str | None = None
    ocr_text: str | None = None
    context: ScreenContext | None = None


class ClassificationProviderContext(BaseModel):
    """Per-call provider settings derived from user settings.

    When mode is OFF the router touches no provider at all.
    """

    model_config = ConfigDict(frozen=True)

    mode: AiMode
    api_key: str | None = None
    allow_vision_uploads: bool = False
    cloud_model: str | None = None
    local_base_url: str | None = None
    local_model: str | None = None


# === Outputs ===


class ProviderAvailability(BaseModel):
    """Result of a provider availability probe."""

    available: bool
    reason: str | None = None

    @classmethod
    def ok(cls) -> "ProviderAvailability":
        return cls(available=True, reason=None)

    @classmethod
    def unavailable(cls, reason: str) -> "ProviderAvailability":
        return cls(available=False, reason=reason)


class ProviderAttempt(BaseModel):
    """One provider touch during a single classify call."""

    provider_id: str
    available: bool
    latency_ms: int = Field(default=0, ge=0)
    error: str | None = None


class ClassificationDecision(BaseModel):
    """The router's answer: a result from one provider, or none, plus the trail."""

    ok: bool
    provider_id: str | None = None
    result: ClassificationResult | None = None
    attempts: list[ProviderAttempt] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_ok_matches_payload(self) -> "ClassificationDecision":
        has_payload = self.provider_id is not None and self.result is not None
        if self.ok != has_payload:
            raise ValueError("ok must be true exactly when provider_id and result are set")
        return self


class ConnectionTestResult(BaseModel):
    """Outcome of a user-triggered connection check."""

    success: bool
    error: str | None = None
