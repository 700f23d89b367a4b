from django.db.models.signals import post_save
from django.dispatch import receiver

from members.models import Member
from records.models import PreferenceRecord, SafetyProfile


@receiver(post_save, sender=Member)
def provision_member_records(sender, instance: Member, created: bool, raw: bool = False, **_kwargs):
    """Every registered member gets its 1:1 preference record and safety profile."""

    if not created or raw:
        return

    PreferenceRecord.objects.get_or_create(member=instance)
    SafetyProfile.objects.get_or_create(member=instance)
