"""Per-request relay pipeline: build, invoke, normalize."""

from __future__ import annotations

import logging
import time
from functools import partial

from config import Settings
from relay import client, normalizer
from relay.errors import HOP_DOWNLOAD, HOP_PROVIDER
from relay.models import EnhancementTicket, NormalizedResult, Provider, UploadedFile
from relay.providers import ENHANCE_IMAGE, REMOVE_BG, build_request

logger = logging.getLogger(__name__)


async def remove_background(upload: UploadedFile, provider: Provider, settings: Settings) -> NormalizedResult:
    request = build_request(upload, provider, settings)
    payload = await client.run_with_deadline(partial(client.post_provider, request), provider.timeout, HOP_PROVIDER)
    return normalizer.to_result(normalizer.decode_removal(payload), provider)


async def request_enhancement(upload: UploadedFile, provider: Provider, settings: Settings) -> EnhancementTicket:
    """First hop: submit the image and get back where the result lives."""
    request = build_request(upload, provider, settings)
    payload = await client.run_with_deadline(partial(client.post_provider, request), provider.timeout, HOP_PROVIDER)
    return normalizer.read_enhancement_ticket(payload)


async def download_enhancement(ticket: EnhancementTicket, provider: Provider) -> NormalizedResult:
    """Second hop: fetch the enhanced image bytes."""
    timeout = provider.download_timeout or provider.timeout
    logger.info("Downloading enhanced image from %s", ticket.image_url)
    content = await client.run_with_deadline(partial(client.fetch_image, ticket.image_url, timeout), timeout, HOP_DOWNLOAD)
    return normalizer.to_result(normalizer.check_download(content), provider)


async def enhance_image(upload: UploadedFile, provider: Provider, settings: Settings) -> NormalizedResult:
    ticket = await request_enhancement(upload, provider, settings)
    return await download_enhancement(ticket, provider)


PIPELINES = {
    REMOVE_BG: remove_background,
    ENHANCE_IMAGE: enhance_image,
}


async def process(upload: UploadedFile, provider: Provider, settings: Settings) -> NormalizedResult:
    """Relay ``upload`` through ``provider``. Failures propagate as exceptions."""
    started = time.monotonic()
    logger.info(
        "Processing image: provider=%s filename=%s size=%.2f KB mimetype=%s",
        provider.name,
        upload.filename,
        upload.size / 1024,
        upload.content_type,
    )
    result = await PIPELINES[provider.name](upload, provider, settings)
    logger.info("Success! provider=%s processing_time=%dms", provider.name, (time.monotonic() - started) * 1000)
    return result
