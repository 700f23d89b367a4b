from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from members.index import deactivate_pairing
from members.invites import accept_invite, issue_invite, pending_invites
from members.models import Member, Pairing
from members.serializers import (
    InviteAcceptSerializer,
    InviteCreateSerializer,
    MemberSerializer,
    PairingSerializer,
    PartnerInviteSerializer,
)
from records.selectors import current_pairing, fetch_one
from tenancy.exceptions import AuthenticationAbsent
from tenancy.policy import OP_UPDATE, collapse
from tenancy.views import SubjectScopedAPIViewMixin


class MemberDetailAPIView(SubjectScopedAPIViewMixin, APIView):
    def get(self, request, member_id):
        result = fetch_one(self.get_subject(), Member.objects.all(), member_id)
        return self.respond_one(result, MemberSerializer)


class CurrentPairingAPIView(SubjectScopedAPIViewMixin, APIView):
    def get(self, request):
        return self.respond_many(current_pairing(self.get_subject()), PairingSerializer)


class InviteListCreateAPIView(SubjectScopedAPIViewMixin, APIView):
    def get(self, request):
        return self.respond_many(pending_invites(self.get_subject()), PartnerInviteSerializer)

    def post(self, request):
        subject = self.get_subject()
        if subject is None:
            raise AuthenticationAbsent("Unresolved subject.")

        serializer = InviteCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        invite = issue_invite(
            subject,
            expires_in_days=serializer.validated_data["expires_in_days"],
            relationship_type=serializer.validated_data["relationship_type"],
        )
        return Response(PartnerInviteSerializer(invite).data, status=status.HTTP_201_CREATED)


class InviteAcceptAPIView(SubjectScopedAPIViewMixin, APIView):
    """Invitation acceptance: the caller pairs with the inviting member."""

    def post(self, request):
        subject = self.get_subject()
        if subject is None:
            raise AuthenticationAbsent("Unresolved subject.")

        serializer = InviteAcceptSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        pairing = accept_invite(subject, serializer.validated_data["code"])
        return Response(PairingSerializer(pairing).data, status=status.HTTP_201_CREATED)


class PairingDeactivateAPIView(SubjectScopedAPIViewMixin, APIView):
    def post(self, request, pairing_id):
        subject = self.get_subject()
        rows = collapse(fetch_one(subject, Pairing.objects.all(), pairing_id, operation=OP_UPDATE))
        if not rows:
            return self.not_found()
        pairing = deactivate_pairing(subject, rows[0])
        return Response(PairingSerializer(pairing).data)
