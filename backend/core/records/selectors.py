"""Policy-enforcing reads. Every row passes through the evaluator before it leaves."""

from members.index import scope_for
from members.models import Member, Pairing
from records.models import AssessmentResponse, CommunicationRecord
from tenancy.context import Subject
from tenancy.policy import OP_READ, Allowed, Forbidden, collapse, evaluate, filter_authorized


NOT_FOUND = "NOT_FOUND"


def _scope_resolver_for(scope):
    return lambda _subject: scope


def fetch_rows(subject: Subject | None, queryset, *, operation: str = OP_READ):
    return filter_authorized(subject, operation, queryset)


def fetch_one(subject: Subject | None, queryset, pk, *, operation: str = OP_READ):
    if not isinstance(subject, Subject):
        return evaluate(subject, operation, None)
    instance = queryset.filter(pk=pk).first()
    if instance is None:
        return Forbidden(reason=NOT_FOUND)
    return evaluate(subject, operation, instance)


def fetch_member_bundles(subject: Subject | None, queryset=None):
    """Joined fetch of member + preferences + safety profile.

    Each joined component is authorized on its own; a bundle is kept only if at
    least one component survives, and carries only the surviving components.
    """

    if not isinstance(subject, Subject):
        return filter_authorized(subject, OP_READ, ())

    if queryset is None:
        queryset = Member.objects.all()
    queryset = queryset.select_related("preferences", "safety_profile")

    scope = scope_for(subject)
    resolver = _scope_resolver_for(scope)
    bundles = []
    for member in queryset:
        components = {
            "member": member,
            "preferences": getattr(member, "preferences", None),
            "safety_profile": getattr(member, "safety_profile", None),
        }
        visible = {}
        for key, row in components.items():
            if row is None:
                continue
            allowed = filter_authorized(subject, OP_READ, (row,), scope_resolver=resolver)
            if allowed.rows:
                visible[key] = row
        if visible:
            bundles.append(visible)
    return Allowed(rows=tuple(bundles))


def fetch_own_bundle(subject: Subject | None) -> dict:
    if not isinstance(subject, Subject):
        return {}
    bundles = collapse(
        fetch_member_bundles(subject, Member.objects.filter(pk=subject.member_id))
    )
    return bundles[0] if bundles else {}


def visible_assessment_responses(subject: Subject | None):
    if not isinstance(subject, Subject):
        return filter_authorized(subject, OP_READ, ())
    scope = scope_for(subject)
    candidates = AssessmentResponse.objects.candidates_for(scope).select_related("member")
    return filter_authorized(subject, OP_READ, candidates, scope_resolver=_scope_resolver_for(scope))


def pairing_communications(subject: Subject | None, pairing_id):
    if not isinstance(subject, Subject):
        return filter_authorized(subject, OP_READ, ())
    scope = scope_for(subject)
    candidates = CommunicationRecord.objects.for_pairing(pairing_id)
    return filter_authorized(subject, OP_READ, candidates, scope_resolver=_scope_resolver_for(scope))


def current_pairing(subject: Subject | None):
    if not isinstance(subject, Subject):
        return filter_authorized(subject, OP_READ, ())
    scope = scope_for(subject)
    if scope is None or scope.pairing_id is None:
        return Allowed(rows=())
    return fetch_rows(subject, Pairing.objects.filter(pk=scope.pairing_id))
