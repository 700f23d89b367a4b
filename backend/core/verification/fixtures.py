"""Deterministic synthetic tenants for the isolation scenarios.

Everything is derived from a seed: the same seed always produces the same members,
pairings, records and malformed identifiers, so a failed run can be replayed.
"""

import logging
import random
import uuid
from dataclasses import dataclass, field

from django.conf import settings

from members.index import create_pairing, deactivate_pairing
from members.invites import issue_invite
from members.models import Member, Pairing, PartnerInvite
from records.models import AssessmentResponse, CommunicationRecord, PreferenceRecord, SafetyProfile
from records.services import post_communication, submit_assessment_response
from safety.models import SafetySignal
from safety.services import append_safety_signal
from tenancy.consent import set_consent
from tenancy.context import Subject

logger = logging.getLogger(__name__)

DEFAULT_SEED = 20240917

PAIRED_PERSONAS = (
    ("alice", "bob", Pairing.TYPE_DATING),
    ("charlie", "diana", Pairing.TYPE_MARRIED),
)
FORMER_PAIR = ("eve", "frank")
INACTIVE_PERSONA = "grace"
NO_SAFETY_PROFILE_PERSONA = "henry"
PERSONA_COUNT = 8

QUESTION_IDS = (
    "love_language_primary",
    "attachment_style",
    "conflict_resolution",
    "weekly_checkin",
)


@dataclass
class HarnessWorld:
    seed: int
    personas: dict = field(default_factory=dict)
    pairings: dict = field(default_factory=dict)
    responses: dict = field(default_factory=dict)
    communications: dict = field(default_factory=dict)
    signals: dict = field(default_factory=dict)
    invites: dict = field(default_factory=dict)
    synthetic_members: list = field(default_factory=list)
    synthetic_pairings: list = field(default_factory=list)
    orphaned_records: list = field(default_factory=list)
    malformed_subject_ids: tuple = ()

    def member(self, name: str) -> Member:
        return self.personas[name]

    def subject(self, name: str) -> Subject:
        return Subject(member_id=self.personas[name].pk)

    @property
    def all_members(self) -> list:
        return [*self.personas.values(), *self.synthetic_members]

    @property
    def all_pairings(self) -> list:
        return [*self.pairings.values(), *self.synthetic_pairings]

    @property
    def active_subjects(self) -> list:
        return [Subject(member_id=m.pk) for m in self.all_members if m.is_active]

    def private_records_of(self, name: str) -> list:
        """Fresh copies of the persona's member, preference and safety-profile rows."""

        member_id = self.personas[name].pk
        rows = [
            Member.objects.get(pk=member_id),
            PreferenceRecord.objects.get(member_id=member_id),
        ]
        profile = SafetyProfile.objects.filter(member_id=member_id).first()
        if profile is not None:
            rows.append(profile)
        return rows

    def fresh_response(self, name: str) -> AssessmentResponse:
        return AssessmentResponse.objects.get(pk=self.responses[name].pk)

    def fresh_signal(self, name: str) -> SafetySignal:
        return SafetySignal.objects.get(pk=self.signals[name].pk)

    def fresh_invite(self, name: str) -> PartnerInvite:
        return PartnerInvite.objects.get(pk=self.invites[name].pk)

    def resource_samples(self) -> list:
        """One stored instance of every registered resource type."""

        return [
            *self.private_records_of("alice"),
            Pairing.objects.get(pk=self.pairings["alice_bob"].pk),
            self.communications["alice_bob"],
            self.fresh_response("alice"),
            self.fresh_signal("alice"),
            self.fresh_invite(NO_SAFETY_PROFILE_PERSONA),
        ]


def _uuid(rng: random.Random) -> uuid.UUID:
    return uuid.UUID(int=rng.getrandbits(128), version=4)


def _create_member(rng: random.Random, display_name: str) -> Member:
    return Member.objects.create(display_name=display_name, auth_subject=_uuid(rng))


def _subject(member: Member) -> Subject:
    return Subject(member_id=member.pk)


def _signal(member: Member, rng: random.Random, **overrides) -> SafetySignal:
    values = {
        "signal_source": SafetySignal.SOURCE_ASSESSMENT_RESPONSE,
        "signal_type": rng.choice([value for value, _label in SafetySignal.TYPE_CHOICES]),
        "risk_level": rng.choice([value for value, _label in SafetySignal.RISK_CHOICES]),
        "confidence_score": f"{rng.randint(10, 99) / 100:.2f}",
        "detected_indicators": sorted(rng.sample(["withdrawal", "hopelessness", "anger", "sleep"], 2)),
    }
    values.update(overrides)
    return append_safety_signal(_subject(member), **values)


def _build_personas(world: HarnessWorld, rng: random.Random) -> None:
    for name_a, name_b, relationship_type in PAIRED_PERSONAS:
        member_a = _create_member(rng, name_a.title())
        member_b = _create_member(rng, name_b.title())
        world.personas[name_a] = member_a
        world.personas[name_b] = member_b
        pairing = create_pairing(member_a, member_b, relationship_type=relationship_type)
        key = f"{name_a}_{name_b}"
        world.pairings[key] = pairing
        world.communications[key] = post_communication(
            _subject(member_a),
            pairing,
            payload=f"enc:{rng.getrandbits(64):016x}",
            message_type=CommunicationRecord.TYPE_DAILY_PROMPT_RESPONSE,
        )
        world.responses[name_a] = submit_assessment_response(
            _subject(member_a),
            question_id="love_language_primary",
            response_value={"score": rng.randint(10, 99), "primary": "quality_time"},
        )
        world.responses[name_b] = submit_assessment_response(
            _subject(member_b),
            question_id="love_language_primary",
            response_value={"score": rng.randint(10, 99), "primary": "words_of_affirmation"},
        )
        world.signals[name_a] = _signal(member_a, rng, risk_level=SafetySignal.RISK_HIGH)

    # Eve and Frank were paired once. What they wrote then stays behind as orphaned rows.
    name_e, name_f = FORMER_PAIR
    eve = _create_member(rng, name_e.title())
    frank = _create_member(rng, name_f.title())
    world.personas[name_e] = eve
    world.personas[name_f] = frank
    former = create_pairing(eve, frank, relationship_type=Pairing.TYPE_ENGAGED)
    world.communications["eve_frank"] = post_communication(
        _subject(frank), former, payload=f"enc:{rng.getrandbits(64):016x}"
    )
    orphan = submit_assessment_response(
        _subject(eve),
        question_id="conflict_resolution",
        response_value={"score": rng.randint(10, 99)},
    )
    set_consent(_subject(eve), orphan, True)
    world.responses[name_e] = orphan
    world.pairings["eve_frank"] = deactivate_pairing(_subject(eve), former)
    world.orphaned_records.extend([orphan, world.communications["eve_frank"]])

    grace = _create_member(rng, INACTIVE_PERSONA.title())
    world.personas[INACTIVE_PERSONA] = grace
    world.responses[INACTIVE_PERSONA] = submit_assessment_response(
        _subject(grace),
        question_id="weekly_checkin",
        response_value={"score": rng.randint(10, 99)},
    )
    world.signals[INACTIVE_PERSONA] = _signal(grace, rng)
    grace.deactivate()
    world.orphaned_records.append(world.responses[INACTIVE_PERSONA])

    henry = _create_member(rng, NO_SAFETY_PROFILE_PERSONA.title())
    SafetyProfile.objects.filter(member=henry).delete()
    world.personas[NO_SAFETY_PROFILE_PERSONA] = henry
    # Henry is waiting on a partner: one pending invite that nobody has redeemed.
    world.invites[NO_SAFETY_PROFILE_PERSONA] = issue_invite(_subject(henry), relationship_type=Pairing.TYPE_OTHER)


def _build_synthetic(world: HarnessWorld, rng: random.Random, member_count: int, pairing_count: int) -> None:
    pairings_needed = max(pairing_count - len(world.pairings), 0)
    synthetic_count = max(member_count - PERSONA_COUNT, pairings_needed * 2)
    relationship_types = [value for value, _label in Pairing.RELATIONSHIP_TYPE_CHOICES]

    for index in range(synthetic_count):
        member = _create_member(rng, f"Synthetic {index:03d}")
        world.synthetic_members.append(member)

    for index in range(pairings_needed):
        member_a = world.synthetic_members[index * 2]
        member_b = world.synthetic_members[index * 2 + 1]
        pairing = create_pairing(member_a, member_b, relationship_type=rng.choice(relationship_types))
        world.synthetic_pairings.append(pairing)
        post_communication(
            _subject(rng.choice((member_a, member_b))),
            pairing,
            payload=f"enc:{rng.getrandbits(64):016x}",
            message_type=rng.choice([value for value, _label in CommunicationRecord.MESSAGE_TYPE_CHOICES]),
        )

    for index, member in enumerate(world.synthetic_members):
        response = submit_assessment_response(
            _subject(member),
            question_id=rng.choice(QUESTION_IDS),
            response_value={"score": rng.randint(0, 100)},
        )
        if rng.random() < 0.5:
            set_consent(_subject(member), response, True)
        if index % 4 == 0:
            _signal(member, rng)


def build_world(seed: int = DEFAULT_SEED, *, member_count: int | None = None, pairing_count: int | None = None) -> HarnessWorld:
    """Create the full synthetic dataset in the current database."""

    if member_count is None:
        member_count = int(getattr(settings, "TENANCY_HARNESS_MEMBERS", 52))
    if pairing_count is None:
        pairing_count = int(getattr(settings, "TENANCY_HARNESS_PAIRINGS", 26))

    rng = random.Random(seed)
    world = HarnessWorld(seed=seed)
    _build_personas(world, rng)
    _build_synthetic(world, rng, member_count, pairing_count)

    unmapped = _uuid(rng)
    world.malformed_subject_ids = (
        None,
        "",
        "   ",
        "not-a-uuid",
        str(unmapped),
        str(world.personas[INACTIVE_PERSONA].auth_subject),
    )
    logger.info(
        "Harness world built: seed=%s members=%s pairings=%s",
        seed,
        len(world.all_members),
        len(world.all_pairings),
    )
    return world
