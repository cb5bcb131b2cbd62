"""Optional request body decoders for handlers."""

import json
from typing import Any, Union

from httpengine.domain.errors import InvalidJsonBody
from httpengine.domain.http_types import QueryValue
from httpengine.pipeline.parser import parse_query_string

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE = "application/json"


def get_content_type(headers: dict[str, str]) -> str:
    """Return the lower-cased media type of the request, without parameters."""
    content_type = headers.get("content-type", "")
    return content_type.split(";", 1)[0].strip().lower()


def parse_form_data(body: Union[bytes, str]) -> dict[str, QueryValue]:
    """Decode an application/x-www-form-urlencoded body."""
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    return parse_query_string(body)


def parse_json_body(body: Union[bytes, str]) -> Any:
    """Decode a JSON body; an empty body decodes to an empty object."""
    if not body:
        return {}
    try:
        return json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise InvalidJsonBody(f"Invalid JSON: {exc}") from exc
