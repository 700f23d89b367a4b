from dataclasses import dataclass
from typing import Optional

from django.apps import apps

from tenancy.exceptions import PolicyConfigurationError

CLASS_PRIVATE = "private"
CLASS_TENANT_SHARED = "tenant-shared"
CLASS_CONSENT_SHAREABLE = "consent-shareable"
CLASS_VITAL_INTEREST = "vital-interest"

SENSITIVITY_CLASSES = frozenset(
    (CLASS_PRIVATE, CLASS_TENANT_SHARED, CLASS_CONSENT_SHAREABLE, CLASS_VITAL_INTEREST)
)

# Apps whose concrete models must all be registered below.
GUARDED_APP_LABELS = ("members", "records", "safety")


@dataclass(frozen=True)
class ResourceRule:
    sensitivity_class: str
    owner_attr: Optional[str] = None
    pairing_attr: Optional[str] = None


@dataclass(frozen=True)
class Classification:
    resource_type: str
    owner_member_id: Optional[int]
    owner_pairing_id: Optional[int]
    sensitivity_class: str


DEFAULT_RESOURCE_RULES = {
    "members.member": ResourceRule(CLASS_PRIVATE, owner_attr="pk"),
    "members.pairing": ResourceRule(CLASS_TENANT_SHARED, pairing_attr="pk"),
    "members.partnerinvite": ResourceRule(CLASS_PRIVATE, owner_attr="inviter_id"),
    "records.preferencerecord": ResourceRule(CLASS_PRIVATE, owner_attr="member_id"),
    "records.safetyprofile": ResourceRule(CLASS_PRIVATE, owner_attr="member_id"),
    "records.communicationrecord": ResourceRule(
        CLASS_TENANT_SHARED,
        owner_attr="sender_id",
        pairing_attr="pairing_id",
    ),
    "records.assessmentresponse": ResourceRule(
        CLASS_CONSENT_SHAREABLE,
        owner_attr="member_id",
        pairing_attr="pairing_id",
    ),
    "safety.safetysignal": ResourceRule(CLASS_VITAL_INTEREST, owner_attr="member_id"),
}
KNOWN_RESOURCE_TYPES = frozenset(DEFAULT_RESOURCE_RULES.keys())


def resource_type_for(instance) -> str:
    meta = getattr(instance, "_meta", None)
    if meta is None:
        return type(instance).__name__.lower()
    return meta.label_lower


def get_rule(resource_type: str) -> ResourceRule:
    rule = DEFAULT_RESOURCE_RULES.get(resource_type)
    if rule is None or rule.sensitivity_class not in SENSITIVITY_CLASSES:
        raise PolicyConfigurationError(f"Resource type '{resource_type}' is not registered.")
    return rule


def classify(resource_type: str, instance) -> Classification:
    """Map a resource instance to its owner, owning pairing and sensitivity class.

    The class is static per resource type. Consent state is deliberately not
    consulted here: the policy evaluator reads it from the instance.
    """

    rule = get_rule(resource_type)
    owner_member_id = getattr(instance, rule.owner_attr, None) if rule.owner_attr else None
    owner_pairing_id = getattr(instance, rule.pairing_attr, None) if rule.pairing_attr else None
    return Classification(
        resource_type=resource_type,
        owner_member_id=owner_member_id,
        owner_pairing_id=owner_pairing_id,
        sensitivity_class=rule.sensitivity_class,
    )


def classify_instance(instance) -> Classification:
    return classify(resource_type_for(instance), instance)


def find_unregistered_resource_types() -> list[str]:
    """Concrete models in guarded apps that have no rule. Used at deployment validation."""

    missing = []
    for app_label in GUARDED_APP_LABELS:
        try:
            app_config = apps.get_app_config(app_label)
        except LookupError:
            missing.append(f"{app_label}.*")
            continue
        for model in app_config.get_models():
            label = model._meta.label_lower
            if label not in DEFAULT_RESOURCE_RULES:
                missing.append(label)
    return sorted(missing)
