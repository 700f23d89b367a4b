import logging

from tenancy.classifier import resource_type_for

logger = logging.getLogger("tenancy.audit")


def _subject_label(subject) -> str:
    member_id = getattr(subject, "member_id", None)
    return f"member:{member_id}" if member_id is not None else "anonymous"


def log_denial(subject, operation: str, resource, reason: str) -> None:
    resource_type = resource_type_for(resource) if resource is not None else "-"
    logger.info(
        "DENY reason=%s subject=%s operation=%s resource=%s pk=%s",
        reason,
        _subject_label(subject),
        operation,
        resource_type,
        getattr(resource, "pk", None),
    )


def log_dropped_rows(subject, operation: str, dropped: int) -> None:
    logger.debug(
        "DROP subject=%s operation=%s rows=%s",
        _subject_label(subject),
        operation,
        dropped,
    )


def log_consent_change(subject, resource, granted: bool) -> None:
    logger.info(
        "CONSENT subject=%s resource=%s pk=%s granted=%s version=%s",
        _subject_label(subject),
        resource_type_for(resource),
        getattr(resource, "pk", None),
        granted,
        getattr(resource, "version", None),
    )
