"""Partner invitations: the only path by which two members become a pairing."""

import logging
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from members.index import create_pairing, scope_for
from members.models import Member, Pairing, PartnerInvite
from tenancy import audit
from tenancy.context import Subject
from tenancy.exceptions import (
    AuthenticationAbsent,
    AuthorizationDenied,
    InviteConflict,
    PairingUniquenessConflict,
)
from tenancy.policy import OP_READ, filter_authorized

logger = logging.getLogger(__name__)

OP_ACCEPT = "accept"
INVITE_UNAVAILABLE = "Invite is not available."


def _require_unpaired(subject: Subject | None) -> None:
    if subject is None:
        raise AuthenticationAbsent("Unresolved subject.")
    if scope_for(subject).is_paired:
        raise PairingUniquenessConflict("Caller already belongs to an active pairing.")


def issue_invite(
    subject: Subject | None,
    *,
    expires_in_days: int | None = None,
    relationship_type: str = Pairing.TYPE_DATING,
) -> PartnerInvite:
    """Create a single-use invite code for the caller. One pending invite per member."""

    _require_unpaired(subject)

    if expires_in_days is None:
        expires_in_days = int(getattr(settings, "TENANCY_INVITE_TTL_DAYS", 7))
    max_days = int(getattr(settings, "TENANCY_INVITE_MAX_TTL_DAYS", 30))
    if not 1 <= expires_in_days <= max_days:
        raise ValueError(f"Invite lifetime must be between 1 and {max_days} days.")
    valid_types = {value for value, _label in Pairing.RELATIONSHIP_TYPE_CHOICES}
    if relationship_type not in valid_types:
        raise ValueError(f"Invalid relationship type '{relationship_type}'.")

    now = timezone.now()
    with transaction.atomic():
        # Serializes concurrent issues by the same member.
        Member.objects.select_for_update().filter(pk=subject.member_id).first()
        pending = PartnerInvite.objects.filter(
            inviter_id=subject.member_id,
            consumed_at__isnull=True,
            expires_at__gt=now,
        )
        if pending.exists():
            raise InviteConflict("A pending invite already exists.")
        invite = PartnerInvite.objects.create(
            inviter_id=subject.member_id,
            relationship_type=relationship_type,
            expires_at=now + timedelta(days=expires_in_days),
        )

    logger.info("Invite %s issued by member %s.", invite.pk, subject.member_id)
    return invite


def pending_invites(subject: Subject | None):
    if not isinstance(subject, Subject):
        return filter_authorized(subject, OP_READ, ())
    candidates = PartnerInvite.objects.filter(
        inviter_id=subject.member_id,
        consumed_at__isnull=True,
        expires_at__gt=timezone.now(),
    )
    return filter_authorized(subject, OP_READ, candidates)


def _unavailable_reason(invite: PartnerInvite | None, subject: Subject, now) -> str:
    if invite is None:
        return "INVITE_UNKNOWN"
    if invite.consumed_at is not None:
        return "INVITE_CONSUMED"
    if invite.expires_at <= now:
        return "INVITE_EXPIRED"
    if invite.inviter_id == subject.member_id:
        return "INVITE_SELF"
    return ""


def accept_invite(subject: Subject | None, code: str) -> Pairing:
    """Redeem an invite code and pair the caller with its issuer.

    The caller's own pairing state is reported as a conflict. Everything that
    depends on the code or the inviter (unknown, used, expired, own code, inviter
    gone or already paired) looks the same: ``AuthorizationDenied``.
    """

    _require_unpaired(subject)

    now = timezone.now()
    with transaction.atomic():
        invite = PartnerInvite.objects.select_for_update().filter(code=code).first()
        reason = _unavailable_reason(invite, subject, now)
        if reason:
            audit.log_denial(subject, OP_ACCEPT, invite, reason)
            raise AuthorizationDenied(INVITE_UNAVAILABLE)

        try:
            pairing = create_pairing(
                invite.inviter_id,
                subject,
                relationship_type=invite.relationship_type,
            )
        except PairingUniquenessConflict as exc:
            audit.log_denial(subject, OP_ACCEPT, invite, "INVITER_UNAVAILABLE")
            raise AuthorizationDenied(INVITE_UNAVAILABLE) from exc

        invite.consumed_at = now
        invite.consumed_by_id = subject.member_id
        invite.save(update_fields=["consumed_at", "consumed_by"])

    logger.info("Invite %s accepted by member %s.", invite.pk, subject.member_id)
    return pairing
