"""
Turn daemon error strings into something a user can act on.

The daemon reports failures as "TAG|detail" strings. Only the tag before the
first "|" decides the kind; the detail is kept as-is.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

DEFAULT_MESSAGE = "Failed to apply proxy mode."


class ErrorKind(enum.Enum):
    PROFILE_MISSING = "PROFILE_MISSING"
    PROFILE_INVALID = "PROFILE_INVALID"
    PROFILE_PROXY_TAG_MISSING = "PROFILE_PROXY_TAG_MISSING"
    PROFILE_OUTBOUNDS_MISSING = "PROFILE_OUTBOUNDS_MISSING"
    SINGBOX_MISSING = "SINGBOX_MISSING"
    GENERIC = "GENERIC"


@dataclass(frozen=True)
class ClassifiedError:
    kind: ErrorKind
    message: str
    detail: str = ""
    raw: str = ""

    def __str__(self) -> str:
        return self.message


def classify(raw: str | None, default: str = DEFAULT_MESSAGE) -> ClassifiedError:
    raw = raw or ""
    tag, _, detail = raw.partition("|")
    try:
        kind = ErrorKind(tag)
    except ValueError:
        kind = ErrorKind.GENERIC

    if kind is ErrorKind.PROFILE_MISSING:
        message = f"Created a profile template at {detail}. Fill it in and try again."
    elif kind is ErrorKind.PROFILE_INVALID:
        message = f"Profile is invalid: {detail}"
    elif kind is ErrorKind.PROFILE_PROXY_TAG_MISSING:
        message = "The profile has no outbound tagged 'proxy' and no active profile is selected."
    elif kind is ErrorKind.PROFILE_OUTBOUNDS_MISSING:
        message = "The profile has no outbounds. Add a profile and try again."
    elif kind is ErrorKind.SINGBOX_MISSING:
        message = f"sing-box executable not found: {detail}"
    else:
        kind = ErrorKind.GENERIC
        detail = ""
        message = raw or default
    return ClassifiedError(kind=kind, message=message, detail=detail, raw=raw)
