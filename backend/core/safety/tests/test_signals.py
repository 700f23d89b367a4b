from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import connection
from django.test import TestCase

from members.index import create_pairing
from members.models import Member
from safety.models import SafetySignal
from safety.services import append_safety_signal, list_safety_signals, verify_signal_chain
from tenancy.context import Subject
from tenancy.exceptions import AuthenticationAbsent
from tenancy.policy import DENY, OP_DELETE, OP_UPDATE, Forbidden, authorize, collapse


class SafetySignalTests(TestCase):
    def setUp(self):
        self.alice = Member.objects.create(display_name="Alice")
        self.bob = Member.objects.create(display_name="Bob")
        create_pairing(self.alice, self.bob)
        self.alice_subject = Subject(self.alice.pk)

    def _append(self, subject=None, **overrides):
        values = {
            "signal_source": SafetySignal.SOURCE_COMMUNICATION_ANALYSIS,
            "signal_type": SafetySignal.TYPE_EMOTIONAL_DISTRESS,
            "risk_level": SafetySignal.RISK_MEDIUM,
            "confidence_score": "0.75",
            "detected_indicators": ["withdrawal"],
        }
        values.update(overrides)
        return append_safety_signal(subject or self.alice_subject, **values)

    def test_append_builds_hash_chain(self):
        first = self._append()
        second = self._append(risk_level=SafetySignal.RISK_HIGH)
        self.assertEqual(first.chain_id, f"member:{self.alice.pk}")
        self.assertEqual(first.prev_hash, "")
        self.assertEqual(second.prev_hash, first.entry_hash)
        self.assertEqual(len(second.entry_hash), 64)

        verification = verify_signal_chain(self.alice.pk)
        self.assertTrue(verification.valid)
        self.assertEqual(verification.checked, 2)

    def test_tampering_is_detected(self):
        self._append()
        tampered = self._append()
        with connection.cursor() as cursor:
            cursor.execute(
                f"UPDATE {SafetySignal._meta.db_table} SET risk_level = %s WHERE id = %s",
                [SafetySignal.RISK_LOW, tampered.pk],
            )
        verification = verify_signal_chain(self.alice.pk)
        self.assertFalse(verification.valid)
        self.assertEqual(verification.broken_at, tampered.pk)

    def test_signals_are_immutable(self):
        signal = self._append()
        signal.risk_level = SafetySignal.RISK_LOW
        with self.assertRaises(ValidationError):
            signal.save()
        with self.assertRaises(ValidationError):
            signal.delete()
        with self.assertRaises(ValidationError):
            SafetySignal.objects.filter(pk=signal.pk).update(risk_level=SafetySignal.RISK_LOW)
        with self.assertRaises(ValidationError):
            SafetySignal.objects.filter(pk=signal.pk).delete()
        self.assertEqual(SafetySignal.objects.get(pk=signal.pk).risk_level, SafetySignal.RISK_MEDIUM)

    def test_owner_cannot_update_or_delete_through_policy(self):
        signal = self._append()
        self.assertEqual(authorize(self.alice_subject, OP_UPDATE, signal), DENY)
        self.assertEqual(authorize(self.alice_subject, OP_DELETE, signal), DENY)

    def test_owner_only_listing(self):
        own = self._append()
        self.assertEqual([row.pk for row in collapse(list_safety_signals(self.alice_subject))], [own.pk])
        self.assertEqual(collapse(list_safety_signals(Subject(self.bob.pk), member_id=self.alice.pk)), [])
        self.assertIsInstance(list_safety_signals(None, member_id=self.alice.pk), Forbidden)

    def test_anonymous_append_rejected(self):
        with self.assertRaises(AuthenticationAbsent):
            append_safety_signal(
                None,
                signal_source=SafetySignal.SOURCE_USER_REPORT,
                signal_type=SafetySignal.TYPE_EMOTIONAL_DISTRESS,
                risk_level=SafetySignal.RISK_LOW,
                confidence_score="0.10",
            )
        self.assertFalse(SafetySignal.objects.exists())

    def test_invalid_confidence_rejected(self):
        with self.assertRaises(ValidationError):
            self._append(confidence_score="1.50")

    def test_signals_survive_member_deactivation(self):
        signal = self._append()
        self.alice.deactivate()
        self.assertTrue(SafetySignal.objects.filter(pk=signal.pk).exists())
        self.assertTrue(verify_signal_chain(self.alice.pk).valid)

    def test_partner_does_not_see_signals_over_api(self):
        self._append()
        user = get_user_model().objects.create_user(username="bob", password="testpass123")
        self.bob.account = user
        self.bob.save(update_fields=["account"])
        self.client.force_login(user)
        response = self.client.get("/api/safety-signals/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), [])

    def test_api_append_targets_caller_chain(self):
        user = get_user_model().objects.create_user(username="alice", password="testpass123")
        self.alice.account = user
        self.alice.save(update_fields=["account"])
        self.client.force_login(user)
        response = self.client.post(
            "/api/safety-signals/",
            data={
                "signal_source": "user_report",
                "signal_type": "social_isolation",
                "risk_level": "low",
                "confidence_score": "0.30",
                "member": self.bob.pk,
            },
            content_type="application/json",
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["member"], self.alice.pk)
        self.assertFalse(SafetySignal.objects.filter(member=self.bob).exists())
