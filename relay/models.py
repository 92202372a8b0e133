"""Request-scoped entities passed between the relay stages."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class UploadedFile(BaseModel):
    """An inbound image, fully buffered in memory."""

    model_config = ConfigDict(frozen=True)

    content: bytes = Field(..., description="Raw file bytes")
    content_type: str = Field(..., description="Declared MIME type")
    filename: str = Field(default="upload", description="Original file name")
    size: int = Field(..., description="Size in bytes")


class Provider(BaseModel):
    """Static description of one upstream API."""

    model_config = ConfigDict(frozen=True)

    name: str
    label: str = Field(..., description="Human readable action, e.g. 'Background removal'")
    service: str = Field(..., description="Service name used in connection errors")
    host: str
    path: str
    timeout: float
    media_type: str
    filename_prefix: str
    extension: str
    download_timeout: Optional[float] = Field(
        default=None, description="Timeout of the second-hop fetch, when the provider returns a URL"
    )

    @property
    def url(self) -> str:
        return f"https://{self.host}{self.path}"


class ProviderRequest(BaseModel):
    """Fully built outbound call; immutable once constructed."""

    model_config = ConfigDict(frozen=True)

    url: str
    headers: Dict[str, str]
    files: Dict[str, Tuple[str, bytes, str]]
    timeout: float


class RemovalEntity(BaseModel):
    image: Optional[str] = None


class RemovalResult(BaseModel):
    entities: List[RemovalEntity] = Field(default_factory=list)


class RemovalEnvelope(BaseModel):
    """Background-removal response: ``results[0].entities[0].image``."""

    results: List[RemovalResult] = Field(default_factory=list)


class EnhancementData(BaseModel):
    image_url: Optional[str] = None


class EnhancementEnvelope(BaseModel):
    """Enhancement response: ``{error_code, error_detail?, data?.image_url}``."""

    error_code: Optional[int] = None
    error_msg: Optional[str] = None
    error_detail: Optional[Dict[str, Any]] = None
    data: Optional[EnhancementData] = None


class EnhancementTicket(BaseModel):
    """Outcome of the first enhancement hop: where to fetch the result."""

    model_config = ConfigDict(frozen=True)

    image_url: str


class NormalizedResult(BaseModel):
    """Final image ready to be written to the client."""

    model_config = ConfigDict(frozen=True)

    content: bytes
    media_type: str
    filename: str


class ErrorOutcome(BaseModel):
    """JSON error returned to the caller."""

    status_code: int
    error: str
    details: Optional[str] = None
    message: Optional[str] = None

    def body(self) -> Dict[str, str]:
        payload = {"error": self.error}
        if self.details is not None:
            payload["details"] = self.details
        if self.message is not None:
            payload["message"] = self.message
        return payload
