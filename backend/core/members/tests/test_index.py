from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.test import TestCase

from members.index import create_pairing, deactivate_pairing, scope_for
from members.models import Member, Pairing
from records.models import PreferenceRecord, SafetyProfile
from tenancy.context import Subject
from tenancy.exceptions import AuthenticationAbsent, AuthorizationDenied, PairingUniquenessConflict


class MembershipIndexTests(TestCase):
    def setUp(self):
        self.alice = Member.objects.create(display_name="Alice")
        self.bob = Member.objects.create(display_name="Bob")
        self.charlie = Member.objects.create(display_name="Charlie")
        self.diana = Member.objects.create(display_name="Diana")
        self.pairing = create_pairing(self.alice, self.bob, relationship_type=Pairing.TYPE_ENGAGED)

    def test_scope_is_symmetric(self):
        alice_scope = scope_for(Subject(self.alice.pk))
        bob_scope = scope_for(self.bob)
        self.assertEqual(alice_scope.pairing_id, self.pairing.pk)
        self.assertEqual(bob_scope.pairing_id, self.pairing.pk)
        self.assertEqual(alice_scope.partner_id, self.bob.pk)
        self.assertEqual(bob_scope.partner_id, self.alice.pk)

    def test_unpaired_scope(self):
        scope = scope_for(self.charlie.pk)
        self.assertEqual(scope.member_id, self.charlie.pk)
        self.assertIsNone(scope.partner_id)
        self.assertFalse(scope.is_paired)

    def test_unresolved_caller_has_no_scope(self):
        self.assertIsNone(scope_for(None))

    def test_second_active_pairing_rejected(self):
        with self.assertRaises(PairingUniquenessConflict):
            create_pairing(self.alice, self.charlie)
        with self.assertRaises(PairingUniquenessConflict):
            create_pairing(self.charlie, self.bob)
        self.assertEqual(Pairing.objects.filter(is_active=True).count(), 1)

    def test_self_pairing_rejected(self):
        with self.assertRaises(PairingUniquenessConflict):
            create_pairing(self.charlie, self.charlie)

    def test_inactive_member_cannot_pair(self):
        self.diana.deactivate()
        with self.assertRaises(PairingUniquenessConflict):
            create_pairing(self.charlie, self.diana)

    def test_target_side_failures_share_one_message(self):
        failures = []
        self.diana.deactivate()
        for target in (self.alice, self.diana, 999999):
            with self.assertRaises(PairingUniquenessConflict) as ctx:
                create_pairing(self.charlie, target)
            failures.append(str(ctx.exception))
        self.assertEqual(len(set(failures)), 1)
        self.assertFalse(scope_for(self.charlie).is_paired)

    def test_unknown_relationship_type(self):
        with self.assertRaises(ValueError):
            create_pairing(self.charlie, self.diana, relationship_type="situationship")

    def test_missing_member(self):
        with self.assertRaises(AuthenticationAbsent):
            create_pairing(None, self.diana)

    def test_database_rejects_second_active_pairing(self):
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Pairing.objects.create(member_a=self.alice, member_b=self.charlie)

    def test_database_rejects_self_pairing(self):
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Pairing.objects.create(member_a=self.charlie, member_b=self.charlie)

    def test_deactivation_frees_both_members(self):
        deactivate_pairing(Subject(self.bob.pk), self.pairing)
        stored = Pairing.objects.get(pk=self.pairing.pk)
        self.assertFalse(stored.is_active)
        self.assertEqual(stored.version, 2)
        self.assertFalse(scope_for(self.alice).is_paired)

        repaired = create_pairing(self.alice, self.charlie)
        self.assertEqual(scope_for(self.alice).pairing_id, repaired.pk)

    def test_deactivation_is_idempotent(self):
        deactivate_pairing(Subject(self.alice.pk), self.pairing)
        again = deactivate_pairing(Subject(self.alice.pk), Pairing.objects.get(pk=self.pairing.pk))
        self.assertFalse(again.is_active)
        self.assertEqual(again.version, 2)

    def test_outsider_cannot_deactivate(self):
        with self.assertRaises(AuthorizationDenied):
            deactivate_pairing(Subject(self.charlie.pk), self.pairing)
        with self.assertRaises(AuthenticationAbsent):
            deactivate_pairing(None, self.pairing)
        self.assertTrue(Pairing.objects.get(pk=self.pairing.pk).is_active)

    def test_stale_instance_deactivation_retries(self):
        stale = Pairing.objects.get(pk=self.pairing.pk)
        fresh = Pairing.objects.get(pk=self.pairing.pk)
        fresh.compare_and_set(fresh.version, relationship_type=Pairing.TYPE_MARRIED)
        deactivate_pairing(Subject(self.alice.pk), stale)
        stored = Pairing.objects.get(pk=self.pairing.pk)
        self.assertFalse(stored.is_active)
        self.assertEqual(stored.relationship_type, Pairing.TYPE_MARRIED)


class MemberLifecycleTests(TestCase):
    def test_registration_provisions_private_records(self):
        member = Member.objects.create(display_name="Eve")
        self.assertTrue(PreferenceRecord.objects.filter(member=member).exists())
        profile = SafetyProfile.objects.get(member=member)
        self.assertFalse(profile.partner_notification_consent)

    def test_members_are_never_deleted(self):
        member = Member.objects.create(display_name="Frank")
        with self.assertRaises(ValidationError):
            member.delete()
        member.deactivate()
        member.refresh_from_db()
        self.assertFalse(member.is_active)
        self.assertIsNotNone(member.deactivated_at)
