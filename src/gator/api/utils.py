"""
Shared router helpers: JSON body reading and path parsing.

POST bodies must be ``application/json`` and no larger than
``GatorSettings.max_body_bytes``. The size is checked against
``Content-Length`` up front and again while streaming, so a missing or
lying header cannot push an oversized body through.
"""

from __future__ import annotations

import json
from typing import Any

from fastapi import Request

from gator.bus.bridge import PublishReport
from gator.core.errors import (
    InvalidPayloadError,
    PayloadTooLargeError,
    UnsupportedMediaTypeError,
)
from gator.core.paths import PathTokens, split_path

JSON_MEDIA_TYPE = "application/json"


def _media_type(request: Request) -> str:
    return request.headers.get("content-type", "").split(";", 1)[0].strip().lower()


async def read_json_body(request: Request, max_bytes: int) -> Any:
    """Decode the request body as JSON.

    Raises:
        UnsupportedMediaTypeError: Content-Type is not ``application/json``
        PayloadTooLargeError: body exceeds ``max_bytes``
        InvalidPayloadError: body is not valid JSON
    """
    content_type = _media_type(request)
    if content_type != JSON_MEDIA_TYPE:
        raise UnsupportedMediaTypeError(content_type or "<missing>")

    declared = request.headers.get("content-length")
    if declared is not None and declared.isdigit() and int(declared) > max_bytes:
        raise PayloadTooLargeError(max_bytes)

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > max_bytes:
            raise PayloadTooLargeError(max_bytes)

    try:
        return json.loads(body)
    except ValueError as exc:
        raise InvalidPayloadError(f"invalid JSON: {exc}", cause=exc) from exc


def path_tokens(path: str) -> PathTokens:
    return split_path(path)


def collect_warnings(reports: list[PublishReport]) -> list[dict[str, str]]:
    return [warning for report in reports for warning in report.warnings()]
