from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from safety.serializers import SafetySignalSerializer
from safety.services import append_safety_signal, list_safety_signals
from tenancy.views import SubjectScopedAPIViewMixin


class SafetySignalListCreateAPIView(SubjectScopedAPIViewMixin, APIView):
    """Own signals only. There is no update or delete route: the records are vital-interest."""

    def get(self, request):
        return self.respond_many(list_safety_signals(self.get_subject()), SafetySignalSerializer)

    def post(self, request):
        serializer = SafetySignalSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        signal = append_safety_signal(self.get_subject(), **serializer.validated_data)
        return Response(SafetySignalSerializer(signal).data, status=status.HTTP_201_CREATED)
