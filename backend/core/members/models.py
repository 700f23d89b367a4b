import secrets
import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q
from django.utils import timezone

from tenancy.models import VersionedModel


class Member(models.Model):
    """Internal user. Owns itself; deactivated on closure, never hard-deleted."""

    auth_subject = models.UUIDField(
        default=uuid.uuid4,
        unique=True,
        help_text="External identity-provider subject mapped to this member.",
    )
    account = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="member",
        null=True,
        blank=True,
    )
    display_name = models.CharField(max_length=150)
    is_active = models.BooleanField(default=True)
    safety_monitoring_enabled = models.BooleanField(default=True)
    deactivated_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("id",)
        verbose_name = "Member"
        verbose_name_plural = "Members"

    def __str__(self):
        return f"{self.display_name} (#{self.pk})"

    def deactivate(self):
        if not self.is_active:
            return
        self.is_active = False
        self.deactivated_at = timezone.now()
        self.save(update_fields=["is_active", "deactivated_at", "updated_at"])

    def delete(self, *args, **kwargs):
        raise ValidationError("Members are deactivated, never deleted.")


class Pairing(VersionedModel):
    TYPE_DATING = "dating"
    TYPE_ENGAGED = "engaged"
    TYPE_MARRIED = "married"
    TYPE_DOMESTIC_PARTNERSHIP = "domestic_partnership"
    TYPE_OTHER = "other"
    RELATIONSHIP_TYPE_CHOICES = [
        (TYPE_DATING, "Dating"),
        (TYPE_ENGAGED, "Engaged"),
        (TYPE_MARRIED, "Married"),
        (TYPE_DOMESTIC_PARTNERSHIP, "Domestic partnership"),
        (TYPE_OTHER, "Other"),
    ]

    member_a = models.ForeignKey(
        Member,
        on_delete=models.PROTECT,
        related_name="pairings_as_a",
    )
    member_b = models.ForeignKey(
        Member,
        on_delete=models.PROTECT,
        related_name="pairings_as_b",
    )
    relationship_type = models.CharField(
        max_length=30,
        choices=RELATIONSHIP_TYPE_CHOICES,
        default=TYPE_DATING,
    )
    is_active = models.BooleanField(default=True)
    status_changed_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ("id",)
        constraints = [
            models.CheckConstraint(
                condition=~Q(member_a=models.F("member_b")),
                name="ck_pairing_distinct_members",
            ),
            models.UniqueConstraint(
                fields=("member_a",),
                condition=Q(is_active=True),
                name="uq_pairing_active_member_a",
            ),
            models.UniqueConstraint(
                fields=("member_b",),
                condition=Q(is_active=True),
                name="uq_pairing_active_member_b",
            ),
        ]
        indexes = [
            models.Index(fields=("member_a", "is_active"), name="idx_pairing_a_active"),
            models.Index(fields=("member_b", "is_active"), name="idx_pairing_b_active"),
        ]
        verbose_name = "Pairing"
        verbose_name_plural = "Pairings"

    def __str__(self):
        state = "active" if self.is_active else "inactive"
        return f"Pairing #{self.pk} ({self.member_a_id}+{self.member_b_id}, {state})"

    @property
    def member_ids(self) -> tuple[int, int]:
        return (self.member_a_id, self.member_b_id)

    def partner_of(self, member_id: int):
        if member_id == self.member_a_id:
            return self.member_b_id
        if member_id == self.member_b_id:
            return self.member_a_id
        return None


def generate_invite_code() -> str:
    return secrets.token_urlsafe(9)


class PartnerInvite(models.Model):
    """A single-use code an unpaired member hands to their partner.

    Redeeming it is the only way two members become a pairing.
    """

    code = models.CharField(max_length=32, unique=True, default=generate_invite_code)
    inviter = models.ForeignKey(
        Member,
        on_delete=models.PROTECT,
        related_name="issued_invites",
    )
    relationship_type = models.CharField(
        max_length=30,
        choices=Pairing.RELATIONSHIP_TYPE_CHOICES,
        default=Pairing.TYPE_DATING,
    )
    expires_at = models.DateTimeField()
    consumed_at = models.DateTimeField(null=True, blank=True)
    consumed_by = models.ForeignKey(
        Member,
        on_delete=models.PROTECT,
        related_name="accepted_invites",
        null=True,
        blank=True,
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-created_at", "-id")
        indexes = [
            models.Index(fields=("inviter", "consumed_at"), name="idx_invite_inviter_pending"),
        ]
        verbose_name = "Partner invite"
        verbose_name_plural = "Partner invites"

    def __str__(self):
        return f"Invite #{self.pk} from member {self.inviter_id}"

    def is_pending(self, now=None) -> bool:
        now = now or timezone.now()
        return self.consumed_at is None and self.expires_at > now
