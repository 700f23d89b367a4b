from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from decimal import Decimal

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from safety.models import SafetySignal
from tenancy.context import Subject
from tenancy.exceptions import StaleWriteError
from tenancy.policy import OP_APPEND, OP_READ, filter_authorized, require


def _canonical_json(value) -> str:
    return json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=True,
        default=str,
    )


def _build_entry_hash(payload: dict, prev_hash: str) -> str:
    payload_json = _canonical_json(payload)
    material = f"{prev_hash}{payload_json}".encode("utf-8")
    return hashlib.sha256(material).hexdigest()


def _signal_payload(signal: SafetySignal) -> dict:
    return {
        "chain_id": signal.chain_id,
        "member_id": signal.member_id,
        "signal_source": signal.signal_source,
        "signal_type": signal.signal_type,
        "risk_level": signal.risk_level,
        "confidence_score": str(Decimal(str(signal.confidence_score)).quantize(Decimal("0.01"))),
        "detected_indicators": signal.detected_indicators,
        "occurred_at": signal.occurred_at.isoformat(),
    }


def append_safety_signal(
    subject: Subject | None,
    *,
    signal_source: str,
    signal_type: str,
    risk_level: str,
    confidence_score,
    detected_indicators: list | None = None,
) -> SafetySignal:
    """Append a safety signal to the subject's own chain.

    Retries on concurrent writers racing for the same ``prev_hash``.
    """

    member_id = getattr(subject, "member_id", None)
    chain_id = f"member:{member_id}"
    occurred_at = timezone.now()
    attempts = int(getattr(settings, "TENANCY_CAS_MAX_ATTEMPTS", 5))

    for _attempt in range(attempts):
        prev_hash = (
            SafetySignal.objects.filter(chain_id=chain_id)
            .order_by("-id")
            .values_list("entry_hash", flat=True)
            .first()
            or ""
        )
        signal = SafetySignal(
            member_id=member_id,
            signal_source=signal_source,
            signal_type=signal_type,
            risk_level=risk_level,
            confidence_score=Decimal(str(confidence_score)),
            detected_indicators=list(detected_indicators or []),
            occurred_at=occurred_at,
            chain_id=chain_id,
            prev_hash=prev_hash,
        )
        require(subject, OP_APPEND, signal)
        signal.full_clean(
            exclude=["member", "entry_hash"],
            validate_unique=False,
            validate_constraints=False,
        )
        signal.entry_hash = _build_entry_hash(_signal_payload(signal), prev_hash)

        try:
            with transaction.atomic():
                signal.save(force_insert=True)
            return signal
        except IntegrityError as exc:
            msg = str(exc)
            # Postgres reports the constraint name, sqlite the column names.
            if "uq_safety_signal_prev_hash_per_chain" in msg or "prev_hash" in msg or "entry_hash" in msg:
                continue
            raise

    raise StaleWriteError("Failed to append safety signal (concurrency retries exhausted).")


def list_safety_signals(subject: Subject | None, member_id: int | None = None):
    """Signals visible to the subject, as a tagged result."""

    target = member_id if member_id is not None else getattr(subject, "member_id", None)
    rows = SafetySignal.objects.owned_by(target) if target is not None else SafetySignal.objects.none()
    return filter_authorized(subject, OP_READ, rows)


@dataclass
class ChainVerification:
    checked: int
    valid: bool
    broken_at: int | None = None


def verify_signal_chain(member_id: int) -> ChainVerification:
    prev_hash = ""
    checked = 0
    for signal in SafetySignal.objects.filter(chain_id=f"member:{member_id}").order_by("id"):
        checked += 1
        expected = _build_entry_hash(_signal_payload(signal), prev_hash)
        if signal.prev_hash != prev_hash or signal.entry_hash != expected:
            return ChainVerification(checked=checked, valid=False, broken_at=signal.pk)
        prev_hash = signal.entry_hash
    return ChainVerification(checked=checked, valid=True)
