"""Tests for upload validation."""

import asyncio
import io

import pytest
from starlette.datastructures import Headers, UploadFile

from intake import read_upload
from relay.errors import EmptyUploadError, MissingInputError, PayloadTooLargeError, UnsupportedMediaTypeError

LIMIT = 16


def _upload(data, content_type, filename="photo"):
    return UploadFile(file=io.BytesIO(data), filename=filename, headers=Headers({"content-type": content_type}))


def _read(upload, limit=LIMIT):
    return asyncio.run(read_upload(upload, limit))


@pytest.mark.parametrize("content_type", ["image/jpeg", "image/jpg", "image/png", "image/webp"])
def test_allowed_types_are_accepted(content_type):
    result = _read(_upload(b"abc", content_type))
    assert result.content == b"abc"
    assert result.content_type == content_type
    assert result.size == 3


@pytest.mark.parametrize("content_type", ["image/gif", "application/pdf", "text/plain", ""])
def test_other_types_are_rejected(content_type):
    with pytest.raises(UnsupportedMediaTypeError):
        _read(_upload(b"abc", content_type))


def test_file_at_limit_is_accepted():
    assert _read(_upload(b"x" * LIMIT, "image/png")).size == LIMIT


def test_file_over_limit_is_rejected():
    with pytest.raises(PayloadTooLargeError):
        _read(_upload(b"x" * (LIMIT + 1), "image/png"))


def test_missing_file():
    with pytest.raises(MissingInputError):
        _read(None)


def test_empty_file():
    with pytest.raises(EmptyUploadError):
        _read(_upload(b"", "image/png"))


def test_keeps_original_filename():
    assert _read(_upload(b"abc", "image/png", filename="cat.png")).filename == "cat.png"
