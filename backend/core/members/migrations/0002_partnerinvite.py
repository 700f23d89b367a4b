# Generated manually. Keep in sync with members/models.py.

from django.db import migrations, models
import django.db.models.deletion
import members.models


class Migration(migrations.Migration):
    dependencies = [
        ("members", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="PartnerInvite",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(default=members.models.generate_invite_code, max_length=32, unique=True)),
                ("relationship_type", models.CharField(choices=[("dating", "Dating"), ("engaged", "Engaged"), ("married", "Married"), ("domestic_partnership", "Domestic partnership"), ("other", "Other")], default="dating", max_length=30)),
                ("expires_at", models.DateTimeField()),
                ("consumed_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("consumed_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="accepted_invites", to="members.member")),
                ("inviter", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="issued_invites", to="members.member")),
            ],
            options={
                "verbose_name": "Partner invite",
                "verbose_name_plural": "Partner invites",
                "ordering": ("-created_at", "-id"),
            },
        ),
        migrations.AddIndex(
            model_name="partnerinvite",
            index=models.Index(fields=["inviter", "consumed_at"], name="idx_invite_inviter_pending"),
        ),
    ]
