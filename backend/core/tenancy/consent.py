"""Consent ledger: per-resource sharing flags for consent-shareable records."""

import logging
from typing import Optional

from django.conf import settings

from tenancy import audit
from tenancy.classifier import (
    CLASS_CONSENT_SHAREABLE,
    CLASS_VITAL_INTEREST,
    classify_instance,
)
from tenancy.context import Subject
from tenancy.exceptions import (
    AuthenticationAbsent,
    AuthorizationDenied,
    ConsentStateConflict,
    StaleWriteError,
)

logger = logging.getLogger(__name__)

CONSENT_FIELD = "sharing_consent"


def get_consent(resource) -> bool:
    """Current consent flag of the given resource state. Anything but ``True`` is no."""

    return getattr(resource, CONSENT_FIELD, False) is True


def set_consent(
    subject: Optional[Subject],
    resource,
    granted: bool,
    *,
    expected_version: Optional[int] = None,
):
    """Set the sharing flag. Only the owner may do it; effective for every later check.

    Raises ``ConsentStateConflict`` for vital-interest or otherwise non-shareable
    resources, and ``StaleWriteError`` when ``expected_version`` is out of date.
    """

    if not isinstance(subject, Subject):
        audit.log_denial(subject, "consent", resource, AuthenticationAbsent.reason)
        raise AuthenticationAbsent("Unresolved subject.")
    if not isinstance(granted, bool):
        raise ValueError("granted must be a boolean.")

    classification = classify_instance(resource)
    if classification.owner_member_id != subject.member_id:
        audit.log_denial(subject, "consent", resource, AuthorizationDenied.reason)
        raise AuthorizationDenied("Only the owner may change consent.")

    if classification.sensitivity_class == CLASS_VITAL_INTEREST:
        raise ConsentStateConflict(
            f"Consent cannot be altered on vital-interest resource '{classification.resource_type}'."
        )
    if classification.sensitivity_class != CLASS_CONSENT_SHAREABLE:
        raise ConsentStateConflict(
            f"Resource type '{classification.resource_type}' does not carry a consent flag."
        )

    if expected_version is not None:
        if not resource.compare_and_set(expected_version, **{CONSENT_FIELD: granted}):
            raise StaleWriteError("Consent was changed concurrently; reload and retry.")
        audit.log_consent_change(subject, resource, granted)
        return resource

    attempts = int(getattr(settings, "TENANCY_CAS_MAX_ATTEMPTS", 5))
    for _attempt in range(attempts):
        if resource.compare_and_set(resource.version, **{CONSENT_FIELD: granted}):
            audit.log_consent_change(subject, resource, granted)
            return resource
        resource.refresh_from_db(fields=[CONSENT_FIELD, "version"])

    raise StaleWriteError("Consent changed concurrently; retries exhausted.")
