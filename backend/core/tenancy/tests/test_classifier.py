from django.test import SimpleTestCase

from members.models import Member, Pairing
from records.models import AssessmentResponse, CommunicationRecord, PreferenceRecord, SafetyProfile
from safety.models import SafetySignal
from tenancy.classifier import (
    CLASS_CONSENT_SHAREABLE,
    CLASS_PRIVATE,
    CLASS_TENANT_SHARED,
    CLASS_VITAL_INTEREST,
    classify,
    classify_instance,
    find_unregistered_resource_types,
    get_rule,
    resource_type_for,
)
from tenancy.exceptions import PolicyConfigurationError


class ResourceClassifierTests(SimpleTestCase):
    def test_every_guarded_model_is_registered(self):
        self.assertEqual(find_unregistered_resource_types(), [])

    def test_static_classes(self):
        cases = (
            (Member(pk=1), CLASS_PRIVATE),
            (PreferenceRecord(pk=2, member_id=1), CLASS_PRIVATE),
            (SafetyProfile(pk=3, member_id=1), CLASS_PRIVATE),
            (Pairing(pk=4, member_a_id=1, member_b_id=2), CLASS_TENANT_SHARED),
            (CommunicationRecord(pk=5, pairing_id=4, sender_id=1), CLASS_TENANT_SHARED),
            (AssessmentResponse(pk=6, member_id=1, pairing_id=4), CLASS_CONSENT_SHAREABLE),
            (SafetySignal(pk=7, member_id=1), CLASS_VITAL_INTEREST),
        )
        for instance, expected in cases:
            with self.subTest(resource_type=resource_type_for(instance)):
                self.assertEqual(classify_instance(instance).sensitivity_class, expected)

    def test_owner_and_pairing_extraction(self):
        classification = classify(
            "records.assessmentresponse",
            AssessmentResponse(pk=6, member_id=11, pairing_id=40),
        )
        self.assertEqual(classification.owner_member_id, 11)
        self.assertEqual(classification.owner_pairing_id, 40)

        pairing = classify_instance(Pairing(pk=40, member_a_id=11, member_b_id=12))
        self.assertIsNone(pairing.owner_member_id)
        self.assertEqual(pairing.owner_pairing_id, 40)

        member = classify_instance(Member(pk=11))
        self.assertEqual(member.owner_member_id, 11)
        self.assertIsNone(member.owner_pairing_id)

    def test_class_does_not_depend_on_consent(self):
        shared = AssessmentResponse(pk=6, member_id=1, pairing_id=4, sharing_consent=True)
        private = AssessmentResponse(pk=7, member_id=1, pairing_id=4, sharing_consent=False)
        self.assertEqual(
            classify_instance(shared).sensitivity_class,
            classify_instance(private).sensitivity_class,
        )

    def test_unknown_type_raises(self):
        with self.assertRaises(PolicyConfigurationError):
            get_rule("records.unknown")

    def test_resource_type_for_plain_objects(self):
        class Exported:
            pass

        self.assertEqual(resource_type_for(Exported()), "exported")
        self.assertEqual(resource_type_for(Member()), "members.member")
