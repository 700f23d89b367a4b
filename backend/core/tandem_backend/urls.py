from django.http import JsonResponse
from django.urls import path
from rest_framework.authtoken.views import obtain_auth_token

from members.views import (
    CurrentPairingAPIView,
    InviteAcceptAPIView,
    InviteListCreateAPIView,
    MemberDetailAPIView,
    PairingDeactivateAPIView,
)
from records.views import (
    AssessmentResponseDetailAPIView,
    AssessmentResponseListCreateAPIView,
    ConsentAPIView,
    MeAPIView,
    MemberPreferencesAPIView,
    MemberSafetyProfileAPIView,
    PairingCommunicationsAPIView,
)
from safety.views import SafetySignalListCreateAPIView


def healthz(_request):
    return JsonResponse({"status": "ok"})


urlpatterns = [
    path("healthz/", healthz, name="healthz"),
    path("api/auth/token/", obtain_auth_token, name="api-token-auth"),
    path("api/me/", MeAPIView.as_view(), name="me"),
    path("api/members/<int:member_id>/", MemberDetailAPIView.as_view(), name="member-detail"),
    path(
        "api/members/<int:member_id>/preferences/",
        MemberPreferencesAPIView.as_view(),
        name="member-preferences",
    ),
    path(
        "api/members/<int:member_id>/safety-profile/",
        MemberSafetyProfileAPIView.as_view(),
        name="member-safety-profile",
    ),
    path("api/pairing/", CurrentPairingAPIView.as_view(), name="pairing-current"),
    path("api/invites/", InviteListCreateAPIView.as_view(), name="invite-list"),
    path("api/invites/accept/", InviteAcceptAPIView.as_view(), name="invite-accept"),
    path(
        "api/pairings/<int:pairing_id>/deactivate/",
        PairingDeactivateAPIView.as_view(),
        name="pairing-deactivate",
    ),
    path(
        "api/pairings/<int:pairing_id>/communications/",
        PairingCommunicationsAPIView.as_view(),
        name="pairing-communications",
    ),
    path("api/assessments/", AssessmentResponseListCreateAPIView.as_view(), name="assessment-list"),
    path(
        "api/assessments/<int:response_id>/",
        AssessmentResponseDetailAPIView.as_view(),
        name="assessment-detail",
    ),
    path(
        "api/consent/<slug:resource_type>/<int:resource_id>/",
        ConsentAPIView.as_view(),
        name="consent-state",
    ),
    path("api/safety-signals/", SafetySignalListCreateAPIView.as_view(), name="safety-signal-list"),
]
