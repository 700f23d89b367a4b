"""Isolation scenarios, registered by group.

A scenario is a plain function taking the ``HarnessWorld``; it passes by returning
and fails by raising ``ScenarioFailure``. Groups run in registration order.
"""

from dataclasses import dataclass
from typing import Callable

from django.conf import settings

from members.identity import resolve
from members.index import create_pairing, scope_for
from members.invites import accept_invite, pending_invites
from members.models import Member, Pairing
from records.models import AssessmentResponse, PreferenceRecord, SafetyProfile
from records.selectors import (
    fetch_member_bundles,
    fetch_one,
    pairing_communications,
    visible_assessment_responses,
)
from records.services import submit_assessment_response
from tenancy.classifier import find_unregistered_resource_types
from tenancy.consent import get_consent, set_consent
from tenancy.context import Subject
from tenancy.exceptions import (
    AuthenticationAbsent,
    AuthorizationDenied,
    ConsentStateConflict,
    PairingUniquenessConflict,
)
from tenancy.policy import ALLOW, DENY, OPERATIONS, OP_APPEND, OP_DELETE, OP_READ, OP_UPDATE, authorize, collapse
from verification.performance import (
    measure_concurrent_checks,
    measure_repeated_evaluation,
    measure_single_check,
)

GROUP_SETUP_VALIDATION = "setup_validation"
GROUP_TENANT_ISOLATION = "tenant_isolation"
GROUP_CONSENT_CONTROLS = "consent_controls"
GROUP_ANONYMOUS_ACCESS = "anonymous_access"
GROUP_JOIN_LEAKAGE = "join_leakage"
GROUP_EDGE_CASES = "edge_cases"
GROUP_PERFORMANCE = "performance"


@dataclass(frozen=True)
class ScenarioGroup:
    name: str
    description: str
    critical: bool
    # Isolated groups run each scenario in a rolled-back transaction.
    isolated: bool = True


GROUPS = (
    ScenarioGroup(GROUP_SETUP_VALIDATION, "Fixture and registry sanity", critical=True),
    ScenarioGroup(GROUP_TENANT_ISOLATION, "Owner, partner and cross-pairing access", critical=True),
    ScenarioGroup(GROUP_CONSENT_CONTROLS, "Consent grant, revoke and ownership", critical=True),
    ScenarioGroup(GROUP_ANONYMOUS_ACCESS, "Unresolved callers see nothing", critical=True),
    ScenarioGroup(GROUP_JOIN_LEAKAGE, "Multi-row and joined fetches", critical=True),
    ScenarioGroup(GROUP_EDGE_CASES, "Inactive pairings, orphans, malformed subjects", critical=False),
    ScenarioGroup(GROUP_PERFORMANCE, "Latency and residue budgets", critical=False, isolated=False),
)
GROUPS_BY_NAME = {group.name: group for group in GROUPS}


@dataclass(frozen=True)
class Scenario:
    group: str
    name: str
    func: Callable


SCENARIOS: list[Scenario] = []


class ScenarioFailure(AssertionError):
    pass


def scenario(group: str):
    if group not in GROUPS_BY_NAME:
        raise ValueError(f"Unknown scenario group '{group}'.")

    def register(func):
        SCENARIOS.append(Scenario(group=group, name=func.__name__, func=func))
        return func

    return register


def scenarios_for(group: str) -> list[Scenario]:
    return [item for item in SCENARIOS if item.group == group]


def expect(condition, message: str) -> None:
    if not condition:
        raise ScenarioFailure(message)


def expect_raises(exc_type, func, *args, **kwargs) -> None:
    try:
        func(*args, **kwargs)
    except exc_type:
        return
    raise ScenarioFailure(f"{getattr(func, '__name__', func)} did not raise {exc_type.__name__}.")


def _label(resource) -> str:
    return f"{resource._meta.label_lower}#{resource.pk}"


def _static_scopes(world) -> dict:
    return {member.pk: scope_for(member) for member in world.all_members if member.is_active}


# --- setup_validation -------------------------------------------------------


@scenario(GROUP_SETUP_VALIDATION)
def resource_registry_is_complete(world):
    missing = find_unregistered_resource_types()
    expect(not missing, f"Unregistered resource types: {', '.join(missing)}.")


@scenario(GROUP_SETUP_VALIDATION)
def fixture_volume(world):
    expect(Member.objects.count() >= 50, "Fewer than 50 members generated.")
    expect(Pairing.objects.count() >= 25, "Fewer than 25 pairings generated.")
    expect(AssessmentResponse.objects.exists(), "No assessment responses generated.")


@scenario(GROUP_SETUP_VALIDATION)
def personas_resolve(world):
    for name in ("alice", "bob", "charlie", "diana", "eve", "frank", "henry"):
        member = world.member(name)
        expect(resolve(str(member.auth_subject)) == Subject(member.pk), f"{name} did not resolve.")


@scenario(GROUP_SETUP_VALIDATION)
def persona_scopes(world):
    alice, bob = scope_for(world.member("alice")), scope_for(world.member("bob"))
    charlie = scope_for(world.member("charlie"))
    expect(alice.pairing_id is not None, "alice is not paired.")
    expect(alice.pairing_id == bob.pairing_id, "alice and bob resolve to different pairings.")
    expect(alice.partner_id == world.member("bob").pk, "alice's partner is not bob.")
    expect(charlie.pairing_id not in (None, alice.pairing_id), "charlie shares alice's pairing.")
    for name in ("eve", "frank", "henry"):
        expect(not scope_for(world.member(name)).is_paired, f"{name} should be unpaired.")


# --- tenant_isolation -------------------------------------------------------


@scenario(GROUP_TENANT_ISOLATION)
def owner_reads_own_records(world):
    alice = world.subject("alice")
    owned = [*world.private_records_of("alice"), world.fresh_response("alice"), world.fresh_signal("alice")]
    for resource in owned:
        expect(authorize(alice, OP_READ, resource) == ALLOW, f"alice denied her own {_label(resource)}.")


@scenario(GROUP_TENANT_ISOLATION)
def partner_denied_private_records(world):
    bob = world.subject("bob")
    for resource in world.private_records_of("alice"):
        for operation in OPERATIONS:
            expect(
                authorize(bob, operation, resource) == DENY,
                f"bob allowed to {operation} alice's {_label(resource)}.",
            )


@scenario(GROUP_TENANT_ISOLATION)
def vital_interest_records_owner_only(world):
    signal = world.fresh_signal("alice")
    alice, bob = world.subject("alice"), world.subject("bob")
    expect(authorize(alice, OP_READ, signal) == ALLOW, "alice cannot read her signal.")
    expect(authorize(alice, OP_APPEND, signal) == ALLOW, "alice cannot append to her signals.")
    expect(authorize(alice, OP_UPDATE, signal) == DENY, "alice may update a signal.")
    expect(authorize(alice, OP_DELETE, signal) == DENY, "alice may delete a signal.")
    for operation in OPERATIONS:
        expect(authorize(bob, operation, signal) == DENY, f"bob allowed to {operation} alice's signal.")


@scenario(GROUP_TENANT_ISOLATION)
def pairing_members_share_tenant_records(world):
    pairing = Pairing.objects.get(pk=world.pairings["alice_bob"].pk)
    message = world.communications["alice_bob"]
    for name in ("alice", "bob"):
        subject = world.subject(name)
        expect(authorize(subject, OP_READ, pairing) == ALLOW, f"{name} cannot read own pairing.")
        expect(authorize(subject, OP_READ, message) == ALLOW, f"{name} cannot read pairing messages.")
    for name in ("charlie", "diana", "eve"):
        subject = world.subject(name)
        expect(authorize(subject, OP_READ, pairing) == DENY, f"{name} can read alice/bob pairing.")
        expect(authorize(subject, OP_READ, message) == DENY, f"{name} can read alice/bob messages.")


@scenario(GROUP_TENANT_ISOLATION)
def cross_pairing_reads_look_missing(world):
    alice = world.subject("alice")
    charlie = world.member("charlie")
    missing_pk = 10**9

    probes = (
        (Pairing.objects.all(), world.pairings["charlie_diana"].pk),
        (PreferenceRecord.objects.all(), PreferenceRecord.objects.get(member=charlie).pk),
        (SafetyProfile.objects.all(), SafetyProfile.objects.get(member=charlie).pk),
        (AssessmentResponse.objects.all(), world.responses["charlie"].pk),
    )
    for queryset, pk in probes:
        existing = fetch_one(alice, queryset, pk)
        absent = fetch_one(alice, queryset, missing_pk)
        expect(collapse(existing) == [], f"alice read {queryset.model._meta.label_lower}#{pk}.")
        expect(collapse(existing) == collapse(absent), "denied and missing records differ at the boundary.")

    messages = collapse(pairing_communications(alice, world.pairings["charlie_diana"].pk))
    expect(messages == [], "alice read charlie/diana communications.")


@scenario(GROUP_TENANT_ISOLATION)
def synthetic_pairings_isolated(world):
    scopes = _static_scopes(world)
    pairings = list(Pairing.objects.filter(is_active=True))
    for member_id, scope in scopes.items():
        subject = Subject(member_id)
        for pairing in pairings:
            expected = ALLOW if member_id in pairing.member_ids else DENY
            decision = authorize(subject, OP_READ, pairing, scope_resolver=lambda _s, scope=scope: scope)
            expect(decision == expected, f"member {member_id} got {decision} on pairing {pairing.pk}.")


@scenario(GROUP_TENANT_ISOLATION)
def pending_invites_private_to_inviter(world):
    invite = world.fresh_invite("henry")
    henry = world.subject("henry")
    expect(authorize(henry, OP_READ, invite) == ALLOW, "henry cannot read his invite.")
    expect([row.pk for row in collapse(pending_invites(henry))] == [invite.pk], "henry lost his pending invite.")
    for name in ("alice", "eve", "frank"):
        subject = world.subject(name)
        expect(authorize(subject, OP_READ, invite) == DENY, f"{name} can read henry's invite.")
        expect(collapse(pending_invites(subject)) == [], f"{name} sees someone else's invites.")


# --- consent_controls -------------------------------------------------------


@scenario(GROUP_CONSENT_CONTROLS)
def consent_round_trip(world):
    alice, bob = world.subject("alice"), world.subject("bob")
    response = world.fresh_response("alice")
    expect(get_consent(response) is False, "new response is shared by default.")

    def bob_sees():
        return [row for row in collapse(visible_assessment_responses(bob)) if row.pk == response.pk]

    expect(bob_sees() == [], "bob read alice's response before consent.")

    set_consent(alice, response, True)
    seen = bob_sees()
    expect(len(seen) == 1, "bob cannot read alice's response after consent.")
    expect(seen[0].response_value == world.responses["alice"].response_value, "score altered.")

    set_consent(alice, response, False)
    expect(bob_sees() == [], "bob still reads alice's response after revoke.")

    set_consent(alice, response, True)
    expect(len(bob_sees()) == 1, "re-grant not effective.")
    set_consent(alice, response, False)
    expect(bob_sees() == [], "second revoke not effective.")

    expect(
        AssessmentResponse.objects.filter(member_id=alice.member_id, question_id=response.question_id).count() == 1,
        "consent changes created extra rows.",
    )


@scenario(GROUP_CONSENT_CONTROLS)
def only_owner_sets_consent(world):
    response = world.fresh_response("alice")
    expect_raises(AuthorizationDenied, set_consent, world.subject("bob"), response, True)
    expect_raises(AuthenticationAbsent, set_consent, None, response, True)
    expect(get_consent(world.fresh_response("alice")) is False, "non-owner changed consent.")


@scenario(GROUP_CONSENT_CONTROLS)
def vital_interest_consent_is_usage_error(world):
    expect_raises(ConsentStateConflict, set_consent, world.subject("alice"), world.fresh_signal("alice"), True)


@scenario(GROUP_CONSENT_CONTROLS)
def consent_does_not_cross_pairings(world):
    response = world.fresh_response("alice")
    set_consent(world.subject("alice"), response, True)
    for name in ("charlie", "diana", "eve"):
        expect(authorize(world.subject(name), OP_READ, response) == DENY, f"{name} read consented response.")
    set_consent(world.subject("alice"), response, False)


# --- anonymous_access -------------------------------------------------------


@scenario(GROUP_ANONYMOUS_ACCESS)
def anonymous_denied_everywhere(world):
    for resource in world.resource_samples():
        for operation in OPERATIONS:
            expect(authorize(None, operation, resource) == DENY, f"anonymous {operation} on {_label(resource)}.")


@scenario(GROUP_ANONYMOUS_ACCESS)
def malformed_subjects_denied(world):
    for raw in world.malformed_subject_ids:
        subject = resolve(raw)
        expect(subject is None, f"malformed identifier {raw!r} resolved.")
        for resource in world.resource_samples():
            expect(authorize(subject, OP_READ, resource) == DENY, f"unresolved caller read {_label(resource)}.")
    for bogus in ("", "member:1", 1, object()):
        expect(authorize(bogus, OP_READ, world.fresh_response("alice")) == DENY, "non-subject allowed.")


@scenario(GROUP_ANONYMOUS_ACCESS)
def anonymous_selectors_empty(world):
    expect(collapse(fetch_member_bundles(None)) == [], "anonymous joined fetch returned rows.")
    expect(collapse(visible_assessment_responses(None)) == [], "anonymous read responses.")
    pairing_id = world.pairings["alice_bob"].pk
    expect(collapse(pairing_communications(None, pairing_id)) == [], "anonymous read messages.")


# --- join_leakage -----------------------------------------------------------


def _bundle_owner_ids(bundle) -> set:
    owners = set()
    for key, row in bundle.items():
        owners.add(row.pk if key == "member" else row.member_id)
    return owners


@scenario(GROUP_JOIN_LEAKAGE)
def joined_fetch_returns_only_own_bundle(world):
    subjects = [world.subject("alice"), world.subject("bob"), world.subject("charlie")]
    subjects.extend(Subject(member.pk) for member in world.synthetic_members[::7])
    for subject in subjects:
        bundles = collapse(fetch_member_bundles(subject, Member.objects.all()))
        expect(len(bundles) == 1, f"{subject} received {len(bundles)} bundles.")
        expect(_bundle_owner_ids(bundles[0]) == {subject.member_id}, f"{subject} bundle leaked foreign rows.")


@scenario(GROUP_JOIN_LEAKAGE)
def joined_fetch_tolerates_missing_component(world):
    henry = world.subject("henry")
    bundles = collapse(fetch_member_bundles(henry, Member.objects.all()))
    expect(len(bundles) == 1, "henry's bundle missing.")
    expect(set(bundles[0]) == {"member", "preferences"}, "unexpected components for henry.")


@scenario(GROUP_JOIN_LEAKAGE)
def aggregate_reads_drop_unauthorized_rows(world):
    scopes = _static_scopes(world)
    for member_id, scope in scopes.items():
        rows = collapse(visible_assessment_responses(Subject(member_id)))
        for row in rows:
            own = row.member_id == member_id
            shared = scope.shares_pairing(row.pairing_id) and row.sharing_consent
            expect(own or shared, f"member {member_id} received response {row.pk}.")


@scenario(GROUP_JOIN_LEAKAGE)
def communications_scoped_to_pairing(world):
    for pairing in world.synthetic_pairings[:5]:
        for member_id in pairing.member_ids:
            rows = collapse(pairing_communications(Subject(member_id), pairing.pk))
            expect(rows and all(row.pairing_id == pairing.pk for row in rows), "pairing messages missing or leaked.")
        outsider = Subject(world.member("alice").pk)
        expect(collapse(pairing_communications(outsider, pairing.pk)) == [], "outsider read messages.")


# --- edge_cases -------------------------------------------------------------


@scenario(GROUP_EDGE_CASES)
def inactive_pairing_grants_nothing(world):
    former = Pairing.objects.get(pk=world.pairings["eve_frank"].pk)
    expect(former.is_active is False, "eve/frank pairing is still active.")
    for name in ("eve", "frank"):
        subject = world.subject(name)
        expect(authorize(subject, OP_READ, former) == DENY, f"{name} reads the inactive pairing.")
        expect(
            collapse(pairing_communications(subject, former.pk)) == [],
            f"{name} reads history of a deactivated pairing.",
        )


@scenario(GROUP_EDGE_CASES)
def orphaned_records_stay_with_owner(world):
    orphan = world.fresh_response("eve")
    expect(get_consent(orphan) is True, "orphan fixture lost its consent flag.")
    expect(authorize(world.subject("eve"), OP_READ, orphan) == ALLOW, "eve lost her own response.")
    expect(authorize(world.subject("frank"), OP_READ, orphan) == DENY, "former partner reads orphan.")


@scenario(GROUP_EDGE_CASES)
def deactivated_member_records_hidden(world):
    grace = world.member("grace")
    expect(resolve(str(grace.auth_subject)) is None, "inactive member resolved.")
    for row in (world.fresh_response("grace"), world.fresh_signal("grace")):
        for name in ("alice", "bob"):
            expect(authorize(world.subject(name), OP_READ, row) == DENY, f"{name} reads grace's {_label(row)}.")


@scenario(GROUP_EDGE_CASES)
def double_pairing_rejected(world):
    alice, charlie, eve = world.member("alice"), world.member("charlie"), world.member("eve")
    expect_raises(PairingUniquenessConflict, create_pairing, alice, charlie)
    expect_raises(PairingUniquenessConflict, create_pairing, eve, alice)
    expect_raises(PairingUniquenessConflict, create_pairing, eve, eve)
    expect(scope_for(alice).pairing_id == world.pairings["alice_bob"].pk, "alice's pairing changed.")


@scenario(GROUP_EDGE_CASES)
def pairing_only_through_redeemed_invite(world):
    frank, eve = world.subject("frank"), world.subject("eve")
    code = world.fresh_invite("henry").code
    expect_raises(AuthorizationDenied, accept_invite, frank, "never-issued")
    expect_raises(AuthorizationDenied, accept_invite, world.subject("henry"), code)
    expect(not scope_for(frank).is_paired, "frank paired without an invite.")

    pairing = accept_invite(frank, code)
    expect(set(pairing.member_ids) == {world.member("henry").pk, frank.member_id}, "invite paired the wrong members.")
    expect_raises(AuthorizationDenied, accept_invite, eve, code)
    expect(not scope_for(eve).is_paired, "a consumed invite paired eve.")


@scenario(GROUP_EDGE_CASES)
def unregistered_resource_type_denied(world):
    class Unregistered:
        pk = 1
        member_id = world.member("alice").pk

    expect(authorize(world.subject("alice"), OP_READ, Unregistered()) == DENY, "unregistered type allowed.")
    expect(authorize(world.subject("alice"), "export", world.fresh_response("alice")) == DENY, "unknown operation.")


@scenario(GROUP_EDGE_CASES)
def unpaired_consent_shares_with_nobody(world):
    henry = world.subject("henry")
    response = submit_assessment_response(henry, question_id="weekly_checkin", response_value={"score": 50})
    expect(response.pairing_id is None, "unpaired response was attached to a pairing.")
    set_consent(henry, response, True)
    for name in ("frank", "eve", "alice"):
        expect(authorize(world.subject(name), OP_READ, response) == DENY, f"{name} reads henry's response.")


# --- performance ------------------------------------------------------------


@scenario(GROUP_PERFORMANCE)
def single_check_within_budget(world):
    alice = world.subject("alice")
    response_pk = world.responses["alice"].pk

    def fetch(subject):
        return collapse(fetch_one(subject, AssessmentResponse.objects.all(), response_pk))

    fetch(alice)
    timing, rows = measure_single_check(fetch, alice)
    expect(len(rows) == 1, "single check returned no row.")
    expect(timing.within_budget, f"single check took {timing.elapsed_ms:.1f}ms (budget {timing.budget_ms:.0f}ms).")


@scenario(GROUP_PERFORMANCE)
def concurrent_checks_within_budget(world):
    count = int(getattr(settings, "TENANCY_CONCURRENT_SUBJECTS", 10))
    subjects = world.active_subjects[:count]

    def fetch(subject):
        return collapse(visible_assessment_responses(subject))

    timing = measure_concurrent_checks(fetch, subjects)
    expect(len(timing.rows_by_member) == len(subjects), "some concurrent checks did not return.")
    for subject in subjects:
        concurrent_pks = [row.pk for row in timing.rows_by_member[subject.member_id]]
        sequential_pks = [row.pk for row in fetch(subject)]
        expect(concurrent_pks == sequential_pks, f"{subject} saw different rows under load.")
    expect(timing.within_budget, f"concurrent checks took {timing.elapsed_ms:.1f}ms (budget {timing.budget_ms:.0f}ms).")


@scenario(GROUP_PERFORMANCE)
def repeated_evaluation_leaves_no_residue(world):
    subjects = world.active_subjects[:20]
    resources = world.resource_samples()
    check = measure_repeated_evaluation(subjects, resources)
    expect(check.reproducible, "decisions changed between identical rounds.")
    expect(
        check.memory_growth_bytes < check.budget_bytes,
        f"memory grew by {check.memory_growth_bytes} bytes over {check.rounds} rounds.",
    )
