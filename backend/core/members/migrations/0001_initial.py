# Generated manually. Keep in sync with members/models.py.

import uuid

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Member",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("auth_subject", models.UUIDField(default=uuid.uuid4, help_text="External identity-provider subject mapped to this member.", unique=True)),
                ("display_name", models.CharField(max_length=150)),
                ("is_active", models.BooleanField(default=True)),
                ("safety_monitoring_enabled", models.BooleanField(default=True)),
                ("deactivated_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("account", models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="member", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "verbose_name": "Member",
                "verbose_name_plural": "Members",
                "ordering": ("id",),
            },
        ),
        migrations.CreateModel(
            name="Pairing",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("version", models.PositiveIntegerField(default=1)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("relationship_type", models.CharField(choices=[("dating", "Dating"), ("engaged", "Engaged"), ("married", "Married"), ("domestic_partnership", "Domestic partnership"), ("other", "Other")], default="dating", max_length=30)),
                ("is_active", models.BooleanField(default=True)),
                ("status_changed_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("member_a", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="pairings_as_a", to="members.member")),
                ("member_b", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="pairings_as_b", to="members.member")),
            ],
            options={
                "verbose_name": "Pairing",
                "verbose_name_plural": "Pairings",
                "ordering": ("id",),
            },
        ),
        migrations.AddConstraint(
            model_name="pairing",
            constraint=models.CheckConstraint(
                condition=~models.Q(("member_a", models.F("member_b"))),
                name="ck_pairing_distinct_members",
            ),
        ),
        migrations.AddConstraint(
            model_name="pairing",
            constraint=models.UniqueConstraint(condition=models.Q(("is_active", True)), fields=("member_a",), name="uq_pairing_active_member_a"),
        ),
        migrations.AddConstraint(
            model_name="pairing",
            constraint=models.UniqueConstraint(condition=models.Q(("is_active", True)), fields=("member_b",), name="uq_pairing_active_member_b"),
        ),
        migrations.AddIndex(
            model_name="pairing",
            index=models.Index(fields=["member_a", "is_active"], name="idx_pairing_a_active"),
        ),
        migrations.AddIndex(
            model_name="pairing",
            index=models.Index(fields=["member_b", "is_active"], name="idx_pairing_b_active"),
        ),
    ]
