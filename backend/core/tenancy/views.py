from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from members.identity import resolve_request_subject
from tenancy.exceptions import (
    AuthenticationAbsent,
    AuthorizationDenied,
    ConsentStateConflict,
    InviteConflict,
    PairingUniquenessConflict,
    StaleWriteError,
)
from tenancy.policy import Allowed, collapse

NOT_FOUND_DETAIL = "Not found."


class SubjectScopedAPIViewMixin:
    """Resolve the caller once per request and pass it explicitly to every read/write.

    Anonymous and denied callers are not rejected up front: lists come back empty and
    details as 404, so a denial looks exactly like a missing record.
    """

    permission_classes = [AllowAny]

    def get_subject(self):
        if not hasattr(self, "_subject"):
            self._subject = resolve_request_subject(self.request)
        return self._subject

    def not_found(self):
        return Response({"detail": NOT_FOUND_DETAIL}, status=status.HTTP_404_NOT_FOUND)

    def respond_many(self, result, serializer_class):
        return Response(serializer_class(collapse(result), many=True).data)

    def respond_one(self, result, serializer_class):
        rows = collapse(result) if isinstance(result, Allowed) else []
        if not rows:
            return self.not_found()
        return Response(serializer_class(rows[0]).data)

    def handle_exception(self, exc):
        if isinstance(exc, (AuthenticationAbsent, AuthorizationDenied)):
            return self.not_found()
        if isinstance(
            exc, (ConsentStateConflict, InviteConflict, PairingUniquenessConflict, StaleWriteError)
        ):
            return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)
        return super().handle_exception(exc)
