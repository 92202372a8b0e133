"""Upstream provider catalogue and outbound request construction."""

from __future__ import annotations

import logging
from typing import Dict

from config import Settings
from relay.errors import MissingConfigurationError
from relay.models import Provider, ProviderRequest, UploadedFile

logger = logging.getLogger(__name__)

REMOVE_BG = "remove-bg"
ENHANCE_IMAGE = "enhance-image"


def get_providers(settings: Settings) -> Dict[str, Provider]:
    """Return the provider table for the configured hosts."""
    return {
        REMOVE_BG: Provider(
            name=REMOVE_BG,
            label="Background removal",
            service="background removal service",
            host=settings.remove_bg_host,
            path="/v1/results",
            timeout=60.0,
            media_type="image/png",
            filename_prefix="removed-bg",
            extension="png",
        ),
        ENHANCE_IMAGE: Provider(
            name=ENHANCE_IMAGE,
            label="Image enhancement",
            service="image enhancement service",
            host=settings.enhance_host,
            path="/face/editing/enhance-face",
            timeout=120.0,
            media_type="image/jpeg",
            filename_prefix="enhanced",
            extension="jpg",
            download_timeout=60.0,
        ),
    }


def build_request(upload: UploadedFile, provider: Provider, settings: Settings) -> ProviderRequest:
    """
    Build the outbound multipart call for ``provider``.

    Raises MissingConfigurationError when no API key is configured, before
    anything touches the network. The multipart Content-Type (with its
    boundary) is set by the HTTP client from ``files``.
    """
    if not settings.has_api_key:
        logger.error("RAPIDAPI_KEY not configured")
        raise MissingConfigurationError()

    logger.info(
        "API configuration: endpoint=%s has_api_key=%s key_prefix=%s...",
        provider.url,
        settings.has_api_key,
        settings.rapidapi_key[:4],
    )

    return ProviderRequest(
        url=provider.url,
        headers={
            "x-rapidapi-key": settings.rapidapi_key,
            "x-rapidapi-host": provider.host,
        },
        files={"image": (upload.filename, upload.content, upload.content_type)},
        timeout=provider.timeout,
    )
