from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Subject:
    """A resolved caller. Only ever built by the identity resolver."""

    member_id: int

    def __str__(self) -> str:
        return f"member:{self.member_id}"


@dataclass(frozen=True)
class TenantScope:
    member_id: int
    partner_id: Optional[int] = None
    pairing_id: Optional[int] = None

    @property
    def is_paired(self) -> bool:
        return self.pairing_id is not None

    def shares_pairing(self, pairing_id: Optional[int]) -> bool:
        # An unpaired scope never matches, including against records with no pairing.
        return self.pairing_id is not None and pairing_id is not None and self.pairing_id == pairing_id
