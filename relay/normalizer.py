"""Unwrap provider envelopes into raw image bytes."""

from __future__ import annotations

import base64
import binascii
import logging
import time
from typing import Any

from pydantic import ValidationError

from relay.errors import MissingImageURLError, UpstreamMalformedResponseError, UpstreamProviderError
from relay.models import EnhancementEnvelope, EnhancementTicket, NormalizedResult, Provider, RemovalEnvelope

logger = logging.getLogger(__name__)


def decode_removal(payload: Any) -> bytes:
    """Extract and decode ``results[0].entities[0].image``."""
    try:
        envelope = RemovalEnvelope.model_validate(payload)
    except ValidationError as exc:
        logger.error("Invalid API response format: %s", exc)
        raise UpstreamMalformedResponseError() from exc

    if not envelope.results or not envelope.results[0].entities:
        logger.error("Invalid API response format: no results/entities")
        raise UpstreamMalformedResponseError()

    encoded = envelope.results[0].entities[0].image
    if not encoded:
        logger.error("Invalid API response format: entity has no image")
        raise UpstreamMalformedResponseError()

    if encoded.startswith("data:") and "," in encoded:
        encoded = encoded.split(",", 1)[1]

    # Line breaks are legal in base64 payloads; anything else outside the alphabet is not.
    encoded = "".join(encoded.split())
    try:
        content = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        logger.error("Invalid API response format: image is not base64")
        raise UpstreamMalformedResponseError() from exc
    if not content:
        logger.error("Invalid API response format: image decodes to nothing")
        raise UpstreamMalformedResponseError()
    return content


def _provider_message(envelope: EnhancementEnvelope) -> str:
    detail = envelope.error_detail or {}
    for key in ("message", "code_message"):
        if detail.get(key):
            return str(detail[key])
    if envelope.error_msg:
        return envelope.error_msg
    return f"error_code {envelope.error_code}"


def read_enhancement_ticket(payload: Any) -> EnhancementTicket:
    """Check the enhancement envelope and return the URL of the result image."""
    try:
        envelope = EnhancementEnvelope.model_validate(payload)
    except ValidationError as exc:
        logger.error("Invalid API response format: %s", exc)
        raise UpstreamMalformedResponseError() from exc

    if envelope.error_code != 0:
        message = _provider_message(envelope)
        logger.error("Enhancement provider reported failure: %s", message)
        raise UpstreamProviderError(details=message)

    if envelope.data is None or not envelope.data.image_url:
        logger.error("No enhanced image URL returned")
        raise MissingImageURLError()

    return EnhancementTicket(image_url=envelope.data.image_url)


def check_download(content: bytes) -> bytes:
    if not content:
        logger.error("Enhanced image download returned an empty body")
        raise UpstreamMalformedResponseError(details="Empty image download")
    return content


def to_result(content: bytes, provider: Provider) -> NormalizedResult:
    stamp = int(time.time() * 1000)
    return NormalizedResult(
        content=content,
        media_type=provider.media_type,
        filename=f"{provider.filename_prefix}-{stamp}.{provider.extension}",
    )
