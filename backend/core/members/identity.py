import logging
from uuid import UUID

from members.models import Member
from tenancy.context import Subject

logger = logging.getLogger(__name__)


def _parse_subject_id(value) -> UUID | None:
    if isinstance(value, UUID):
        return value
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not value:
        return None
    try:
        return UUID(value)
    except ValueError:
        return None


def _subject_from_candidates(candidates) -> Subject | None:
    # Ambiguous or missing mappings fail closed.
    if len(candidates) != 1:
        return None
    member_id, is_active = candidates[0]
    if not is_active:
        return None
    return Subject(member_id=member_id)


def resolve(external_subject_id) -> Subject | None:
    """Map an external identity-provider subject to at most one active member.

    Missing, malformed, ambiguous or unmapped identifiers resolve to ``None``.
    Never raises for bad input.
    """

    subject_uuid = _parse_subject_id(external_subject_id)
    if subject_uuid is None:
        return None

    candidates = list(
        Member.objects.filter(auth_subject=subject_uuid).values_list("id", "is_active")[:2]
    )
    subject = _subject_from_candidates(candidates)
    if subject is None:
        logger.debug("External subject %s did not resolve to a member.", subject_uuid)
    return subject


def resolve_account(user) -> Subject | None:
    if user is None or not getattr(user, "is_authenticated", False):
        return None
    candidates = list(
        Member.objects.filter(account_id=user.pk).values_list("id", "is_active")[:2]
    )
    return _subject_from_candidates(candidates)


def resolve_request_subject(request) -> Subject | None:
    """Resolve the caller of a DRF/Django request. The raw identifier stays here."""

    if request is None:
        return None
    return resolve_account(getattr(request, "user", None))
