import logging

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from members.models import Member, Pairing
from tenancy.context import Subject, TenantScope
from tenancy.exceptions import (
    AuthenticationAbsent,
    AuthorizationDenied,
    PairingUniquenessConflict,
    StaleWriteError,
)

logger = logging.getLogger(__name__)


def _member_id(member_or_subject) -> int | None:
    if member_or_subject is None:
        return None
    if isinstance(member_or_subject, Subject):
        return member_or_subject.member_id
    if isinstance(member_or_subject, int):
        return member_or_subject
    return getattr(member_or_subject, "pk", None)


def _active_pairings_for(member_id: int):
    return Pairing.objects.filter(
        Q(member_a_id=member_id) | Q(member_b_id=member_id),
        is_active=True,
    )


def scope_for(member_or_subject) -> TenantScope | None:
    """Look up the single active pairing containing the member.

    Returns ``None`` for an unresolved caller. A corrupted index (more than one active
    pairing) yields an unpaired scope so tenant-shared checks fail closed.
    """

    member_id = _member_id(member_or_subject)
    if member_id is None:
        return None

    rows = list(
        _active_pairings_for(member_id).values_list("id", "member_a_id", "member_b_id")[:2]
    )
    if not rows:
        return TenantScope(member_id=member_id)
    if len(rows) > 1:
        logger.error(
            "Member %s has %s active pairings; treating as unpaired.", member_id, len(rows)
        )
        return TenantScope(member_id=member_id)

    pairing_id, member_a_id, member_b_id = rows[0]
    partner_id = member_b_id if member_a_id == member_id else member_a_id
    return TenantScope(member_id=member_id, partner_id=partner_id, pairing_id=pairing_id)


PAIRING_UNAVAILABLE = "Pairing could not be created."


def create_pairing(member_a, member_b, *, relationship_type: str = Pairing.TYPE_DATING) -> Pairing:
    """Create an active pairing, rejecting any member that is already paired.

    Called by the invitation-acceptance workflow. Every failure that depends on the
    other member's state raises the same message; the cause is only logged.
    """

    member_a_id = _member_id(member_a)
    member_b_id = _member_id(member_b)
    if member_a_id is None or member_b_id is None:
        raise AuthenticationAbsent("Both members are required to create a pairing.")
    if member_a_id == member_b_id:
        raise PairingUniquenessConflict("A member cannot pair with itself.")

    valid_types = {value for value, _label in Pairing.RELATIONSHIP_TYPE_CHOICES}
    if relationship_type not in valid_types:
        raise ValueError(f"Invalid relationship type '{relationship_type}'.")

    try:
        with transaction.atomic():
            members = list(
                Member.objects.select_for_update()
                .filter(pk__in=(member_a_id, member_b_id), is_active=True)
                .order_by("pk")
                .values_list("pk", flat=True)
            )
            if len(members) != 2:
                logger.info(
                    "Pairing of %s and %s rejected: member missing or inactive.", member_a_id, member_b_id
                )
                raise PairingUniquenessConflict(PAIRING_UNAVAILABLE)

            already_paired = (
                Pairing.objects.filter(is_active=True)
                .filter(
                    Q(member_a_id__in=(member_a_id, member_b_id))
                    | Q(member_b_id__in=(member_a_id, member_b_id))
                )
                .exists()
            )
            if already_paired:
                logger.info(
                    "Pairing of %s and %s rejected: member already paired.", member_a_id, member_b_id
                )
                raise PairingUniquenessConflict(PAIRING_UNAVAILABLE)

            pairing = Pairing.objects.create(
                member_a_id=member_a_id,
                member_b_id=member_b_id,
                relationship_type=relationship_type,
            )
    except IntegrityError as exc:
        # Concurrent creators lose on the partial unique constraints.
        logger.info("Pairing of %s and %s lost a concurrent insert.", member_a_id, member_b_id)
        raise PairingUniquenessConflict(PAIRING_UNAVAILABLE) from exc

    logger.info("Pairing %s created for members %s and %s.", pairing.pk, member_a_id, member_b_id)
    return pairing


def deactivate_pairing(subject: Subject | None, pairing: Pairing) -> Pairing:
    """Unlink a pairing. Either current member may do so; nobody else can see it exists."""

    if subject is None:
        raise AuthenticationAbsent("Unresolved subject.")
    if subject.member_id not in pairing.member_ids:
        raise AuthorizationDenied("Subject is not a member of this pairing.")
    if not pairing.is_active:
        return pairing

    attempts = int(getattr(settings, "TENANCY_CAS_MAX_ATTEMPTS", 5))
    for _attempt in range(attempts):
        expected_version = pairing.version
        if pairing.compare_and_set(
            expected_version,
            is_active=False,
            status_changed_at=timezone.now(),
        ):
            logger.info("Pairing %s deactivated by member %s.", pairing.pk, subject.member_id)
            return pairing
        pairing.refresh_from_db(fields=["is_active", "version", "status_changed_at"])
        if not pairing.is_active:
            return pairing

    raise StaleWriteError("Pairing changed concurrently; retries exhausted.")
