import uuid

from django.contrib.auth import get_user_model
from django.test import TestCase

from members.identity import resolve, resolve_account
from members.models import Member
from tenancy.context import Subject

User = get_user_model()


class IdentityResolverTests(TestCase):
    def setUp(self):
        self.member = Member.objects.create(display_name="Alice")

    def test_resolves_mapped_identifier(self):
        self.assertEqual(resolve(str(self.member.auth_subject)), Subject(self.member.pk))
        self.assertEqual(resolve(self.member.auth_subject), Subject(self.member.pk))
        self.assertEqual(resolve(f"  {self.member.auth_subject}  "), Subject(self.member.pk))

    def test_malformed_identifiers_resolve_to_none(self):
        for raw in (None, "", "   ", "not-a-uuid", 42, b"bytes", ["list"]):
            with self.subTest(raw=raw):
                self.assertIsNone(resolve(raw))

    def test_unmapped_identifier_resolves_to_none(self):
        self.assertIsNone(resolve(str(uuid.uuid4())))

    def test_inactive_member_resolves_to_none(self):
        self.member.deactivate()
        self.assertIsNone(resolve(str(self.member.auth_subject)))

    def test_resolve_is_free_of_side_effects(self):
        before = Member.objects.count()
        resolve(str(uuid.uuid4()))
        resolve(str(self.member.auth_subject))
        self.assertEqual(Member.objects.count(), before)


class AccountResolutionTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="alice", password="testpass123")
        self.member = Member.objects.create(display_name="Alice", account=self.user)

    def test_authenticated_account_resolves(self):
        self.assertEqual(resolve_account(self.user), Subject(self.member.pk))

    def test_account_without_member_resolves_to_none(self):
        stranger = User.objects.create_user(username="stranger", password="testpass123")
        self.assertIsNone(resolve_account(stranger))

    def test_anonymous_resolves_to_none(self):
        from django.contrib.auth.models import AnonymousUser

        self.assertIsNone(resolve_account(AnonymousUser()))
        self.assertIsNone(resolve_account(None))
