from django.test import TestCase

from members.index import create_pairing
from members.models import Member, Pairing


class CompareAndSetTests(TestCase):
    def setUp(self):
        self.pairing = create_pairing(
            Member.objects.create(display_name="A"),
            Member.objects.create(display_name="B"),
        )

    def test_matching_version_writes_and_bumps(self):
        self.assertTrue(self.pairing.compare_and_set(1, is_active=False))
        self.assertEqual(self.pairing.version, 2)
        stored = Pairing.objects.get(pk=self.pairing.pk)
        self.assertFalse(stored.is_active)
        self.assertEqual(stored.version, 2)

    def test_stale_version_writes_nothing(self):
        other = Pairing.objects.get(pk=self.pairing.pk)
        self.assertTrue(other.compare_and_set(1, relationship_type=Pairing.TYPE_MARRIED))

        self.assertFalse(self.pairing.compare_and_set(1, is_active=False))
        self.assertEqual(self.pairing.version, 1)
        stored = Pairing.objects.get(pk=self.pairing.pk)
        self.assertTrue(stored.is_active)
        self.assertEqual(stored.relationship_type, Pairing.TYPE_MARRIED)
