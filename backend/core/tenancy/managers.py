from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q

from tenancy.context import TenantScope


class ScopedQuerySet(models.QuerySet):
    """Candidate narrowing by owner/pairing. Rows still go through the policy evaluator."""

    owner_field = "member"
    pairing_field = None

    def owned_by(self, member_id):
        return self.filter(**{f"{self.owner_field}_id": member_id})

    def for_pairing(self, pairing_id):
        if self.pairing_field is None or pairing_id is None:
            return self.none()
        return self.filter(**{f"{self.pairing_field}_id": pairing_id})

    def candidates_for(self, scope: TenantScope | None):
        if scope is None:
            return self.none()
        condition = Q(**{f"{self.owner_field}_id": scope.member_id})
        if self.pairing_field is not None and scope.pairing_id is not None:
            condition |= Q(**{f"{self.pairing_field}_id": scope.pairing_id})
        return self.filter(condition)


class AppendOnlyQuerySet(ScopedQuerySet):
    def update(self, **kwargs):
        raise ValidationError(f"{self.model._meta.label} rows are immutable; updates are not allowed.")

    def delete(self):
        raise ValidationError(f"{self.model._meta.label} rows are immutable; deletes are not allowed.")

    delete.queryset_only = True
