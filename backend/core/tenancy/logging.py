from __future__ import annotations

import logging
import re
from typing import Any


_UUID_RE = re.compile(
    r"(?<![0-9a-fA-F])[0-9a-fA-F]{8}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{12}(?![0-9a-fA-F])"
)
_EMAIL_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")


def mask_subject_identifiers(text: str) -> str:
    """Mask external subject identifiers and e-mail addresses in a string.

    Internal member ids stay readable; raw identity-provider subjects never reach logs.
    """

    if not text:
        return text

    text = _EMAIL_RE.sub("***EMAIL***", text)
    text = _UUID_RE.sub("***SUBJECT***", text)
    return text


class MaskSubjectIdentifierFilter(logging.Filter):
    """Logging filter to mask subject identifiers in log messages."""

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except Exception:  # pragma: no cover
            message = str(getattr(record, "msg", ""))

        masked = mask_subject_identifiers(str(message))

        # Replace the formatted message and clear args to avoid double formatting.
        record.msg = masked
        record.args = ()

        for key in ("auth_subject", "email", "external_subject_id"):
            if hasattr(record, key):
                value: Any = getattr(record, key)
                if isinstance(value, str):
                    setattr(record, key, mask_subject_identifiers(value))

        return True
