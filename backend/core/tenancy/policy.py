"""Policy evaluator: ``(subject, operation, resource) -> ALLOW | DENY``.

The decision is a pure function of its inputs plus the bounded, indexed membership
lookup. Nothing is cached between calls; every caller passes the resolved subject
explicitly.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from tenancy import audit
from tenancy.classifier import (
    CLASS_CONSENT_SHAREABLE,
    CLASS_PRIVATE,
    CLASS_TENANT_SHARED,
    CLASS_VITAL_INTEREST,
    classify,
    resource_type_for,
)
from tenancy.consent import get_consent
from tenancy.context import Subject, TenantScope
from tenancy.exceptions import (
    AuthenticationAbsent,
    AuthorizationDenied,
    PolicyConfigurationError,
)

logger = logging.getLogger(__name__)

ALLOW = "ALLOW"
DENY = "DENY"

OP_READ = "read"
OP_APPEND = "append"
OP_UPDATE = "update"
OP_DELETE = "delete"

OPERATIONS = frozenset((OP_READ, OP_APPEND, OP_UPDATE, OP_DELETE))
VITAL_INTEREST_OPERATIONS = frozenset((OP_READ, OP_APPEND))

ScopeResolver = Callable[[Subject], Optional[TenantScope]]


@dataclass(frozen=True)
class Allowed:
    rows: tuple


@dataclass(frozen=True)
class Forbidden:
    reason: str


def collapse(result) -> list:
    """External boundary: a forbidden result is indistinguishable from no rows."""

    if isinstance(result, Allowed):
        return list(result.rows)
    return []


def _default_scope_resolver(subject: Subject) -> Optional[TenantScope]:
    from members.index import scope_for

    return scope_for(subject)


def _lazy_scope(subject: Subject, scope_resolver: Optional[ScopeResolver]):
    resolver = scope_resolver or _default_scope_resolver
    resolved = []

    def get_scope() -> Optional[TenantScope]:
        if not resolved:
            resolved.append(resolver(subject))
        return resolved[0]

    return get_scope


def _decide(subject: Subject, operation: str, resource, get_scope) -> tuple[str, str]:
    resource_type = resource_type_for(resource)
    try:
        classification = classify(resource_type, resource)
    except PolicyConfigurationError:
        logger.warning(
            "Policy configuration error: resource type '%s' is not registered; denying.",
            resource_type,
        )
        return DENY, PolicyConfigurationError.reason

    is_owner = (
        classification.owner_member_id is not None
        and classification.owner_member_id == subject.member_id
    )
    sensitivity_class = classification.sensitivity_class

    if sensitivity_class == CLASS_PRIVATE:
        return (ALLOW, "") if is_owner else (DENY, AuthorizationDenied.reason)

    if sensitivity_class == CLASS_VITAL_INTEREST:
        if is_owner and operation in VITAL_INTEREST_OPERATIONS:
            return ALLOW, ""
        return DENY, AuthorizationDenied.reason

    if sensitivity_class == CLASS_TENANT_SHARED:
        scope = get_scope()
        if scope is not None and scope.shares_pairing(classification.owner_pairing_id):
            return ALLOW, ""
        return DENY, AuthorizationDenied.reason

    if sensitivity_class == CLASS_CONSENT_SHAREABLE:
        if is_owner:
            return ALLOW, ""
        scope = get_scope()
        if (
            scope is not None
            and scope.shares_pairing(classification.owner_pairing_id)
            and get_consent(resource) is True
        ):
            return ALLOW, ""
        return DENY, AuthorizationDenied.reason

    return DENY, PolicyConfigurationError.reason


def _check(subject, operation, resource, get_scope) -> tuple[str, str]:
    if not isinstance(subject, Subject):
        return DENY, AuthenticationAbsent.reason
    if operation not in OPERATIONS or resource is None:
        return DENY, AuthorizationDenied.reason
    return _decide(subject, operation, resource, get_scope)


def authorize(
    subject: Optional[Subject],
    operation: str,
    resource,
    *,
    scope_resolver: Optional[ScopeResolver] = None,
) -> str:
    """Return ``ALLOW`` or ``DENY``. Never raises for bad subjects or unknown types."""

    get_scope = _lazy_scope(subject, scope_resolver) if isinstance(subject, Subject) else None
    decision, reason = _check(subject, operation, resource, get_scope)
    if decision == DENY:
        audit.log_denial(subject, operation, resource, reason)
    return decision


def evaluate(
    subject: Optional[Subject],
    operation: str,
    resource,
    *,
    scope_resolver: Optional[ScopeResolver] = None,
):
    get_scope = _lazy_scope(subject, scope_resolver) if isinstance(subject, Subject) else None
    decision, reason = _check(subject, operation, resource, get_scope)
    if decision == ALLOW:
        return Allowed(rows=(resource,))
    audit.log_denial(subject, operation, resource, reason)
    return Forbidden(reason=reason)


def filter_authorized(
    subject: Optional[Subject],
    operation: str,
    rows: Iterable,
    *,
    scope_resolver: Optional[ScopeResolver] = None,
):
    """Apply the per-row decision to a multi-row result and drop denied rows.

    A batch never fails as a whole; an unresolved subject yields ``Forbidden``.
    The membership lookup is shared by the rows of this call only.
    """

    if not isinstance(subject, Subject):
        audit.log_denial(subject, operation, None, AuthenticationAbsent.reason)
        return Forbidden(reason=AuthenticationAbsent.reason)

    get_scope = _lazy_scope(subject, scope_resolver)
    allowed = []
    dropped = 0
    for row in rows:
        decision, _reason = _check(subject, operation, row, get_scope)
        if decision == ALLOW:
            allowed.append(row)
        else:
            dropped += 1
    if dropped:
        audit.log_dropped_rows(subject, operation, dropped)
    return Allowed(rows=tuple(allowed))


def require(subject: Optional[Subject], operation: str, resource, **kwargs) -> None:
    """Raise the internal denial type for write paths; views collapse both to 404."""

    if not isinstance(subject, Subject):
        audit.log_denial(subject, operation, resource, AuthenticationAbsent.reason)
        raise AuthenticationAbsent("Unresolved subject.")
    if authorize(subject, operation, resource, **kwargs) != ALLOW:
        raise AuthorizationDenied(f"{operation} denied.")
