from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from members.models import Pairing
from records.models import AssessmentResponse, CommunicationRecord, PreferenceRecord, SafetyProfile
from records.selectors import (
    fetch_one,
    fetch_own_bundle,
    pairing_communications,
    visible_assessment_responses,
)
from records.serializers import (
    AssessmentResponseSerializer,
    CommunicationRecordSerializer,
    ConsentStateSerializer,
    ConsentUpdateSerializer,
    MemberBundleSerializer,
    PreferenceRecordSerializer,
    SafetyProfileSerializer,
)
from records.services import post_communication, submit_assessment_response, update_preferences
from safety.models import SafetySignal
from tenancy.classifier import resource_type_for
from tenancy.consent import get_consent, set_consent
from tenancy.exceptions import AuthenticationAbsent
from tenancy.policy import OP_READ, collapse
from tenancy.views import SubjectScopedAPIViewMixin

CONSENT_RESOURCE_MODELS = {
    "assessment-response": AssessmentResponse,
    "communication": CommunicationRecord,
    "preference": PreferenceRecord,
    "safety-profile": SafetyProfile,
    "safety-signal": SafetySignal,
}


class MeAPIView(SubjectScopedAPIViewMixin, APIView):
    def get(self, request):
        bundle = fetch_own_bundle(self.get_subject())
        if not bundle:
            return self.not_found()
        return Response(MemberBundleSerializer(bundle).data)


class MemberPreferencesAPIView(SubjectScopedAPIViewMixin, APIView):
    def _fetch(self, member_id):
        subject = self.get_subject()
        instance = PreferenceRecord.objects.filter(member_id=member_id).first()
        if instance is None:
            return subject, None
        rows = collapse(fetch_one(subject, PreferenceRecord.objects.all(), instance.pk))
        return subject, rows[0] if rows else None

    def get(self, request, member_id):
        _subject, preferences = self._fetch(member_id)
        if preferences is None:
            return self.not_found()
        return Response(PreferenceRecordSerializer(preferences).data)

    def patch(self, request, member_id):
        subject, preferences = self._fetch(member_id)
        if preferences is None:
            return self.not_found()
        serializer = PreferenceRecordSerializer(preferences, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        updated = update_preferences(subject, preferences, **serializer.validated_data)
        return Response(PreferenceRecordSerializer(updated).data)


class MemberSafetyProfileAPIView(SubjectScopedAPIViewMixin, APIView):
    def get(self, request, member_id):
        subject = self.get_subject()
        instance = SafetyProfile.objects.filter(member_id=member_id).first()
        if instance is None:
            return self.not_found()
        return self.respond_one(
            fetch_one(subject, SafetyProfile.objects.all(), instance.pk),
            SafetyProfileSerializer,
        )


class PairingCommunicationsAPIView(SubjectScopedAPIViewMixin, APIView):
    def get(self, request, pairing_id):
        result = pairing_communications(self.get_subject(), pairing_id)
        return self.respond_many(result, CommunicationRecordSerializer)

    def post(self, request, pairing_id):
        subject = self.get_subject()
        rows = collapse(fetch_one(subject, Pairing.objects.all(), pairing_id))
        if not rows:
            return self.not_found()
        serializer = CommunicationRecordSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        record = post_communication(subject, rows[0], **serializer.validated_data)
        return Response(CommunicationRecordSerializer(record).data, status=status.HTTP_201_CREATED)


class AssessmentResponseListCreateAPIView(SubjectScopedAPIViewMixin, APIView):
    def get(self, request):
        result = visible_assessment_responses(self.get_subject())
        return self.respond_many(result, AssessmentResponseSerializer)

    def post(self, request):
        subject = self.get_subject()
        if subject is None:
            raise AuthenticationAbsent("Unresolved subject.")
        serializer = AssessmentResponseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        response = submit_assessment_response(
            subject,
            question_id=serializer.validated_data["question_id"],
            response_value=serializer.validated_data.get("response_value", {}),
        )
        return Response(AssessmentResponseSerializer(response).data, status=status.HTTP_201_CREATED)


class AssessmentResponseDetailAPIView(SubjectScopedAPIViewMixin, APIView):
    def get(self, request, response_id):
        result = fetch_one(self.get_subject(), AssessmentResponse.objects.all(), response_id)
        return self.respond_one(result, AssessmentResponseSerializer)


class ConsentAPIView(SubjectScopedAPIViewMixin, APIView):
    """Consent ledger surface for the consent-collection UI."""

    def _fetch(self, resource_type, resource_id):
        model = CONSENT_RESOURCE_MODELS.get(resource_type)
        if model is None:
            return None
        rows = collapse(fetch_one(self.get_subject(), model.objects.all(), resource_id, operation=OP_READ))
        return rows[0] if rows else None

    def _state(self, instance):
        return ConsentStateSerializer(
            {
                "resource_type": resource_type_for(instance),
                "resource_id": instance.pk,
                "granted": get_consent(instance),
                "version": getattr(instance, "version", None),
            }
        ).data

    def get(self, request, resource_type, resource_id):
        instance = self._fetch(resource_type, resource_id)
        if instance is None:
            return self.not_found()
        return Response(self._state(instance))

    def put(self, request, resource_type, resource_id):
        instance = self._fetch(resource_type, resource_id)
        if instance is None:
            return self.not_found()
        serializer = ConsentUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        set_consent(
            self.get_subject(),
            instance,
            serializer.validated_data["granted"],
            expected_version=serializer.validated_data.get("expected_version"),
        )
        return Response(self._state(instance))
