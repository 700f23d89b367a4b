# Generated manually. Keep in sync with safety/models.py.

from django.db import migrations, models
import django.core.serializers.json
import django.core.validators
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("members", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="SafetySignal",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("signal_source", models.CharField(choices=[("communication_analysis", "Communication analysis"), ("assessment_response", "Assessment response"), ("user_report", "User report"), ("pattern_analysis", "Pattern analysis"), ("manual_flag", "Manual flag")], max_length=40)),
                ("signal_type", models.CharField(choices=[("suicidal_ideation", "Suicidal ideation"), ("domestic_violence", "Domestic violence"), ("emotional_distress", "Emotional distress"), ("substance_abuse", "Substance abuse"), ("relationship_crisis", "Relationship crisis"), ("escalating_conflict", "Escalating conflict"), ("social_isolation", "Social isolation")], max_length=40)),
                ("risk_level", models.CharField(choices=[("low", "Low"), ("medium", "Medium"), ("high", "High"), ("critical", "Critical")], max_length=10)),
                ("confidence_score", models.DecimalField(decimal_places=2, max_digits=3, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(1)])),
                ("detected_indicators", models.JSONField(blank=True, default=list, encoder=django.core.serializers.json.DjangoJSONEncoder)),
                ("occurred_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("chain_id", models.CharField(db_index=True, max_length=80)),
                ("prev_hash", models.CharField(blank=True, default="", max_length=64)),
                ("entry_hash", models.CharField(max_length=64, unique=True)),
                ("member", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="safety_signals", to="members.member")),
            ],
            options={
                "verbose_name": "Safety Signal",
                "verbose_name_plural": "Safety Signals",
                "ordering": ("occurred_at", "id"),
            },
        ),
        migrations.AddConstraint(
            model_name="safetysignal",
            constraint=models.UniqueConstraint(fields=("chain_id", "prev_hash"), name="uq_safety_signal_prev_hash_per_chain"),
        ),
        migrations.AddIndex(
            model_name="safetysignal",
            index=models.Index(fields=["member", "occurred_at"], name="idx_signal_member_occurred"),
        ),
    ]
