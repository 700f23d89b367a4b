import logging

from members.index import scope_for
from members.models import Pairing
from records.models import AssessmentResponse, CommunicationRecord, PreferenceRecord
from tenancy.context import Subject
from tenancy.exceptions import AuthenticationAbsent
from tenancy.policy import OP_APPEND, OP_UPDATE, require

logger = logging.getLogger(__name__)

PREFERENCE_EDITABLE_FIELDS = frozenset(
    (
        "email_notifications",
        "push_notifications",
        "profile_visibility",
        "data_sharing_research",
        "anonymous_usage_analytics",
        "crisis_detection_sensitivity",
    )
)


def submit_assessment_response(
    subject: Subject | None,
    *,
    question_id: str,
    response_value: dict,
) -> AssessmentResponse:
    """Store a response under the subject's current pairing. Consent starts false."""

    if not isinstance(subject, Subject):
        raise AuthenticationAbsent("Unresolved subject.")

    scope = scope_for(subject)
    response = AssessmentResponse(
        member_id=subject.member_id,
        pairing_id=scope.pairing_id if scope is not None else None,
        question_id=question_id,
        response_value=response_value,
        sharing_consent=False,
    )
    require(subject, OP_APPEND, response)
    response.save()
    return response


def post_communication(
    subject: Subject | None,
    pairing: Pairing,
    *,
    payload: str,
    message_type: str = CommunicationRecord.TYPE_FREE_FORM,
) -> CommunicationRecord:
    """Append a message to a pairing the subject currently belongs to."""

    record = CommunicationRecord(
        pairing_id=pairing.pk,
        sender_id=getattr(subject, "member_id", None),
        payload=payload,
        message_type=message_type,
    )
    require(subject, OP_APPEND, record)
    record.save()
    return record


def update_preferences(subject: Subject | None, preferences: PreferenceRecord, **changes) -> PreferenceRecord:
    require(subject, OP_UPDATE, preferences)

    unknown = set(changes) - PREFERENCE_EDITABLE_FIELDS
    if unknown:
        raise ValueError(f"Unknown preference fields: {', '.join(sorted(unknown))}.")

    for field_name, value in changes.items():
        setattr(preferences, field_name, value)
    preferences.full_clean(exclude=["member"])
    preferences.save(update_fields=[*sorted(changes), "updated_at"])
    logger.info("Preferences of member %s updated: %s.", preferences.member_id, sorted(changes))
    return preferences
