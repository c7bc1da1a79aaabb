"""
authprobe/net/parser.py

ResponseParser for the SNS XML error envelope:

    <ErrorResponse>
      <Error><Type>Sender</Type><Code>AuthorizationError</Code><Message>...</Message></Error>
      <RequestId>...</RequestId>
    </ErrorResponse>

Nothing here raises. An unparseable body yields all-absent fields.
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass
from typing import Dict, Optional


@dataclass(frozen=True)
class ErrorDetails:
    code: Optional[str] = None      # e.g. "InvalidParameter", "AuthorizationError"
    type: Optional[str] = None      # e.g. "Sender"
    message: Optional[str] = None

    @property
    def empty(self) -> bool:
        return self.code is None and self.type is None and self.message is None

    def to_dict(self) -> Dict[str, str]:
        return {k: v for k, v in (("code", self.code), ("type", self.type), ("message", self.message)) if v is not None}


_TAG_CACHE: Dict[str, "re.Pattern[str]"] = {}


def extract_tag(body: Optional[str], tag: str) -> Optional[str]:
    """Text of the first <tag>...</tag> in body, entity-decoded."""
    if not body:
        return None
    pattern = _TAG_CACHE.get(tag)
    if pattern is None:
        pattern = re.compile(rf"<{tag}>([^<]+)</{tag}>")
        _TAG_CACHE[tag] = pattern
    match = pattern.search(body)
    return html.unescape(match.group(1)) if match else None


def parse_error_details(body: Optional[str]) -> ErrorDetails:
    return ErrorDetails(
        code=extract_tag(body, "Code"),
        type=extract_tag(body, "Type"),
        message=extract_tag(body, "Message"),
    )


def parse_error_code(body: Optional[str]) -> Optional[str]:
    """Error code, falling back to the error type."""
    return extract_tag(body, "Code") or extract_tag(body, "Type")


def parse_request_id(body: Optional[str]) -> Optional[str]:
    return extract_tag(body, "RequestId")


def is_success_status(status: int) -> bool:
    return 200 <= status < 300
