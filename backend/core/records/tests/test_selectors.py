from django.test import TestCase

from members.index import create_pairing, deactivate_pairing
from members.models import Member, Pairing
from records.models import AssessmentResponse, PreferenceRecord, SafetyProfile
from records.selectors import (
    current_pairing,
    fetch_member_bundles,
    fetch_one,
    fetch_own_bundle,
    pairing_communications,
    visible_assessment_responses,
)
from records.services import post_communication, submit_assessment_response, update_preferences
from safety.services import append_safety_signal
from tenancy.consent import set_consent
from tenancy.context import Subject
from tenancy.exceptions import AuthorizationDenied
from tenancy.policy import Allowed, Forbidden, collapse


class CoupleFixtureMixin:
    def create_couple(self, name_a, name_b, relationship_type=Pairing.TYPE_DATING):
        member_a = Member.objects.create(display_name=name_a)
        member_b = Member.objects.create(display_name=name_b)
        pairing = create_pairing(member_a, member_b, relationship_type=relationship_type)
        return member_a, member_b, pairing


class ConsentScenarioTests(CoupleFixtureMixin, TestCase):
    def setUp(self):
        self.alice, self.bob, self.pairing = self.create_couple("Alice", "Bob")
        self.alice_subject = Subject(self.alice.pk)
        self.bob_subject = Subject(self.bob.pk)

    def _bob_sees(self, response):
        return [row for row in collapse(visible_assessment_responses(self.bob_subject)) if row.pk == response.pk]

    def test_partner_visibility_follows_consent(self):
        response = submit_assessment_response(
            self.alice_subject,
            question_id="love_language_primary",
            response_value={"score": 87, "primary": "quality_time"},
        )
        self.assertEqual(response.pairing_id, self.pairing.pk)
        self.assertEqual(self._bob_sees(response), [])

        set_consent(self.alice_subject, response, True)
        seen = self._bob_sees(response)
        self.assertEqual(len(seen), 1)
        self.assertEqual(seen[0].response_value, {"score": 87, "primary": "quality_time"})

        set_consent(self.alice_subject, response, False)
        self.assertEqual(self._bob_sees(response), [])
        self.assertEqual(AssessmentResponse.objects.filter(member=self.alice).count(), 1)

    def test_owner_always_sees_own_responses(self):
        response = submit_assessment_response(self.alice_subject, question_id="q1", response_value={"score": 1})
        rows = collapse(visible_assessment_responses(self.alice_subject))
        self.assertEqual([row.pk for row in rows], [response.pk])


class CrossTenantTests(CoupleFixtureMixin, TestCase):
    def setUp(self):
        self.alice, self.bob, self.alice_bob = self.create_couple("Alice", "Bob")
        self.charlie, self.diana, self.charlie_diana = self.create_couple("Charlie", "Diana", Pairing.TYPE_MARRIED)
        self.alice_subject = Subject(self.alice.pk)
        post_communication(Subject(self.charlie.pk), self.charlie_diana, payload="enc:1")

    def test_reads_of_other_pairing_look_like_missing_records(self):
        missing = 10**9
        probes = (
            (Pairing.objects.all(), self.charlie_diana.pk),
            (PreferenceRecord.objects.all(), PreferenceRecord.objects.get(member=self.charlie).pk),
            (SafetyProfile.objects.all(), SafetyProfile.objects.get(member=self.charlie).pk),
            (Member.objects.all(), self.charlie.pk),
        )
        for queryset, pk in probes:
            with self.subTest(model=queryset.model._meta.label_lower):
                denied = fetch_one(self.alice_subject, queryset, pk)
                absent = fetch_one(self.alice_subject, queryset, missing)
                self.assertIsInstance(denied, Forbidden)
                self.assertIsInstance(absent, Forbidden)
                self.assertEqual(collapse(denied), collapse(absent))
                self.assertEqual(collapse(denied), [])

    def test_other_pairing_communications_empty(self):
        self.assertEqual(collapse(pairing_communications(self.alice_subject, self.charlie_diana.pk)), [])
        own = collapse(pairing_communications(Subject(self.diana.pk), self.charlie_diana.pk))
        self.assertEqual(len(own), 1)

    def test_cannot_post_into_other_pairing(self):
        with self.assertRaises(AuthorizationDenied):
            post_communication(self.alice_subject, self.charlie_diana, payload="enc:2")

    def test_cannot_update_partner_preferences(self):
        bob_preferences = PreferenceRecord.objects.get(member=self.bob)
        with self.assertRaises(AuthorizationDenied):
            update_preferences(self.alice_subject, bob_preferences, email_notifications=False)
        bob_preferences.refresh_from_db()
        self.assertTrue(bob_preferences.email_notifications)

    def test_update_own_preferences(self):
        preferences = PreferenceRecord.objects.get(member=self.alice)
        update_preferences(self.alice_subject, preferences, profile_visibility=PreferenceRecord.VISIBILITY_PRIVATE)
        preferences.refresh_from_db()
        self.assertEqual(preferences.profile_visibility, PreferenceRecord.VISIBILITY_PRIVATE)
        with self.assertRaises(ValueError):
            update_preferences(self.alice_subject, preferences, member_id=self.bob.pk)

    def test_current_pairing(self):
        rows = collapse(current_pairing(self.alice_subject))
        self.assertEqual([row.pk for row in rows], [self.alice_bob.pk])
        self.assertEqual(collapse(current_pairing(None)), [])


class DeactivatedPairingHistoryTests(CoupleFixtureMixin, TestCase):
    def test_former_partners_lose_communication_history(self):
        eve, frank, pairing = self.create_couple("Eve", "Frank")
        post_communication(Subject(eve.pk), pairing, payload="enc:before")
        self.assertEqual(len(collapse(pairing_communications(Subject(frank.pk), pairing.pk))), 1)

        deactivate_pairing(Subject(eve.pk), pairing)
        self.assertEqual(collapse(pairing_communications(Subject(frank.pk), pairing.pk)), [])
        self.assertEqual(collapse(pairing_communications(Subject(eve.pk), pairing.pk)), [])

    def test_consented_response_not_visible_after_unlink(self):
        eve, frank, pairing = self.create_couple("Eve", "Frank")
        response = submit_assessment_response(Subject(eve.pk), question_id="q", response_value={"score": 5})
        set_consent(Subject(eve.pk), response, True)
        deactivate_pairing(Subject(frank.pk), pairing)
        self.assertEqual(collapse(visible_assessment_responses(Subject(frank.pk))), [])
        self.assertEqual(len(collapse(visible_assessment_responses(Subject(eve.pk)))), 1)


class JoinLeakageTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.members = [Member.objects.create(display_name=f"Member {index:02d}") for index in range(52)]
        cls.pairings = [
            create_pairing(cls.members[index], cls.members[index + 1]) for index in range(0, 52, 2)
        ]
        for member in cls.members:
            subject = Subject(member.pk)
            response = submit_assessment_response(subject, question_id="q", response_value={"score": member.pk})
            if member.pk % 2:
                set_consent(subject, response, True)
            append_safety_signal(
                subject,
                signal_source="pattern_analysis",
                signal_type="social_isolation",
                risk_level="low",
                confidence_score="0.10",
            )

    def test_fixture_volume(self):
        self.assertGreaterEqual(Member.objects.count(), 50)
        self.assertGreaterEqual(Pairing.objects.count(), 25)

    def test_joined_fetch_returns_only_subjects_rows(self):
        for member in self.members[::5]:
            subject = Subject(member.pk)
            result = fetch_member_bundles(subject, Member.objects.all())
            self.assertIsInstance(result, Allowed)
            bundles = collapse(result)
            self.assertEqual(len(bundles), 1)
            bundle = bundles[0]
            self.assertEqual(set(bundle), {"member", "preferences", "safety_profile"})
            self.assertEqual(bundle["member"].pk, member.pk)
            self.assertEqual(bundle["preferences"].member_id, member.pk)
            self.assertEqual(bundle["safety_profile"].member_id, member.pk)

    def test_partner_components_dropped_not_failed(self):
        member = self.members[0]
        partner = self.members[1]
        bundles = collapse(fetch_member_bundles(Subject(member.pk), Member.objects.filter(pk__in=[member.pk, partner.pk])))
        self.assertEqual([bundle["member"].pk for bundle in bundles], [member.pk])

    def test_own_bundle(self):
        member = self.members[3]
        bundle = fetch_own_bundle(Subject(member.pk))
        self.assertEqual(bundle["member"].pk, member.pk)
        self.assertEqual(fetch_own_bundle(None), {})

    def test_aggregate_responses_only_own_or_consented_partner(self):
        for index, member in enumerate(self.members):
            partner = self.members[index + 1 if index % 2 == 0 else index - 1]
            rows = collapse(visible_assessment_responses(Subject(member.pk)))
            owners = sorted(row.member_id for row in rows)
            expected = sorted([member.pk] + ([partner.pk] if partner.pk % 2 else []))
            self.assertEqual(owners, expected)

    def test_anonymous_joined_fetch_is_forbidden(self):
        result = fetch_member_bundles(None, Member.objects.all())
        self.assertIsInstance(result, Forbidden)
        self.assertEqual(collapse(result), [])
