# Generated manually. Keep in sync with records/models.py.

from django.db import migrations, models
import django.core.validators
import django.db.models.deletion


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("members", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="PreferenceRecord",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("email_notifications", models.BooleanField(default=True)),
                ("push_notifications", models.BooleanField(default=True)),
                ("profile_visibility", models.CharField(choices=[("private", "Private"), ("partner_only", "Partner only"), ("community_anonymous", "Community (anonymous)")], default="partner_only", max_length=30)),
                ("data_sharing_research", models.BooleanField(default=False)),
                ("anonymous_usage_analytics", models.BooleanField(default=True)),
                ("crisis_detection_sensitivity", models.CharField(choices=[("low", "Low"), ("medium", "Medium"), ("high", "High")], default="medium", max_length=10)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("member", models.OneToOneField(on_delete=django.db.models.deletion.PROTECT, related_name="preferences", to="members.member")),
            ],
            options={
                "verbose_name": "Preference Record",
                "verbose_name_plural": "Preference Records",
                "ordering": ("member_id",),
            },
        ),
        migrations.CreateModel(
            name="SafetyProfile",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("baseline_wellness_score", models.DecimalField(blank=True, decimal_places=2, max_digits=3, null=True, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(1)])),
                ("monitoring_consent_level", models.CharField(choices=[("none", "None"), ("basic", "Basic"), ("enhanced", "Enhanced"), ("full", "Full")], default="basic", max_length=10)),
                ("auto_intervention_consent", models.BooleanField(default=False)),
                ("partner_notification_consent", models.BooleanField(default=False)),
                ("crisis_plan_encrypted", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("member", models.OneToOneField(on_delete=django.db.models.deletion.PROTECT, related_name="safety_profile", to="members.member")),
            ],
            options={
                "verbose_name": "Safety Profile",
                "verbose_name_plural": "Safety Profiles",
                "ordering": ("member_id",),
            },
        ),
        migrations.CreateModel(
            name="CommunicationRecord",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("payload", models.TextField(help_text="Opaque, encrypted upstream.")),
                ("message_type", models.CharField(choices=[("free_form", "Free form"), ("daily_prompt_response", "Daily prompt response"), ("appreciation", "Appreciation"), ("goal_update", "Goal update")], default="free_form", max_length=30)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("pairing", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="communications", to="members.pairing")),
                ("sender", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="sent_communications", to="members.member")),
            ],
            options={
                "verbose_name": "Communication Record",
                "verbose_name_plural": "Communication Records",
                "ordering": ("created_at", "id"),
            },
        ),
        migrations.CreateModel(
            name="AssessmentResponse",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("version", models.PositiveIntegerField(default=1)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("question_id", models.CharField(max_length=80)),
                ("response_value", models.JSONField(default=dict)),
                ("sharing_consent", models.BooleanField(default=False)),
                ("member", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="assessment_responses", to="members.member")),
                ("pairing", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="assessment_responses", to="members.pairing")),
            ],
            options={
                "verbose_name": "Assessment Response",
                "verbose_name_plural": "Assessment Responses",
                "ordering": ("created_at", "id"),
            },
        ),
        migrations.AddIndex(
            model_name="communicationrecord",
            index=models.Index(fields=["pairing", "created_at"], name="idx_comm_pairing_created"),
        ),
        migrations.AddIndex(
            model_name="assessmentresponse",
            index=models.Index(fields=["member", "created_at"], name="idx_assessment_member_created"),
        ),
        migrations.AddIndex(
            model_name="assessmentresponse",
            index=models.Index(fields=["pairing", "sharing_consent"], name="idx_assessment_pairing_consent"),
        ),
    ]
