"""
portal/ndjson.py - Response body decoding.

Streaming responses are newline-delimited JSON: one complete record per
line. A line that fails to parse fails the whole response; truncated
datasets are never returned as partial successes.
"""

import json
from typing import Any, Iterator, List, Optional

from core.constants import HTTP_NO_CONTENT
from core.exceptions import ResponseDecodeError


def iter_ndjson(text: str) -> Iterator[Any]:
    """
    Yield decoded records from an NDJSON body.

    Blank and whitespace-only lines are skipped.

    Raises:
        ResponseDecodeError: On the first line that is not valid JSON
    """
    for line_no, line in enumerate(text.split("\n"), start=1):
        if not line.strip():
            continue
        try:
            yield json.loads(line)
        except json.JSONDecodeError as e:
            raise ResponseDecodeError(
                f"Malformed NDJSON record on line {line_no}: {e.msg}",
                [
                    "The response stream was corrupted or truncated",
                    "Retry the query; if it persists, reduce the block range",
                ],
                {"line": line_no, "snippet": line[:200]},
            ) from e


def decode_ndjson(text: str) -> List[Any]:
    """Decode a whole NDJSON body. All-or-nothing."""
    return list(iter_ndjson(text))


def decode_json(text: str) -> Any:
    """
    Decode a single JSON document.

    Raises:
        ResponseDecodeError: If the body is empty or not valid JSON
    """
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ResponseDecodeError(
            f"Malformed JSON response: {e.msg}",
            ["The Portal returned a body that is not valid JSON"],
            {"snippet": text[:200]},
        ) from e


def decode_body(status: int, text: str, stream: bool, url: Optional[str] = None) -> Any:
    """
    Decode a successful response body.

    204 No Content decodes to an empty list for both modes.
    """
    if status == HTTP_NO_CONTENT:
        return []

    try:
        return decode_ndjson(text) if stream else decode_json(text)
    except ResponseDecodeError as e:
        if url is not None:
            e.context.setdefault("url", url)
        raise
