"""Industry profiles: extra utility directories and compliance gap checks."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from ..models import InventorySnapshot

ComplianceCheck = Callable[[InventorySnapshot], List[str]]


def _keys_contain(snapshot: InventorySnapshot, *needles: str) -> bool:
    return any(needle in key.lower() for key in snapshot.utilities for needle in needles)


def _healthcare_gaps(snapshot: InventorySnapshot) -> List[str]:
    gaps: List[str] = []
    if not _keys_contain(snapshot, "security"):
        gaps.append("No security utilities found for PHI handling")
    if not _keys_contain(snapshot, "mapper", "fhir"):
        gaps.append("No FHIR mappers found for healthcare data transformation")
    if not any("encrypt" in symbol.lower() for symbol, _ in snapshot.all_exports()):
        gaps.append("No exported encryption helper found for patient data")
    return gaps


def _fintech_gaps(snapshot: InventorySnapshot) -> List[str]:
    gaps: List[str] = []
    if not _keys_contain(snapshot, "payment"):
        gaps.append("No payment utilities found for financial transactions")
    return gaps


def _ecommerce_gaps(snapshot: InventorySnapshot) -> List[str]:
    gaps: List[str] = []
    if not _keys_contain(snapshot, "inventory"):
        gaps.append("No inventory utilities found for stock management")
    return gaps


@dataclass(frozen=True)
class IndustryProfile:
    name: str
    utility_dirs: Tuple[str, ...] = ()
    required_utilities: Tuple[str, ...] = ()
    critical_patterns: Tuple[str, ...] = ()
    compliance_check: Optional[ComplianceCheck] = field(default=None, compare=False)

    def compliance_checks(self, snapshot: InventorySnapshot) -> List[str]:
        if self.compliance_check is None:
            return []
        return self.compliance_check(snapshot)


INDUSTRY_PROFILES: Dict[str, IndustryProfile] = {
    "healthcare": IndustryProfile(
        name="Healthcare",
        utility_dirs=(
            "src/security",
            "src/compliance",
            "src/validators",
            "api/mappers",
            "api/record",
            "common/mappers",
            "src/fhir",
            "src/phi",
        ),
        required_utilities=("hashIdentifier", "validateFHIR", "sanitizePHI"),
        critical_patterns=("PHI handling", "FHIR validation", "patient data encryption"),
        compliance_check=_healthcare_gaps,
    ),
    "fintech": IndustryProfile(
        name="Fintech",
        utility_dirs=(
            "src/payments",
            "src/transactions",
            "src/billing",
            "src/stripe",
            "src/encryption",
        ),
        required_utilities=("encryptPII", "validatePayment", "calculateFee"),
        critical_patterns=("PCI compliance", "payment validation", "transaction idempotency"),
        compliance_check=_fintech_gaps,
    ),
    "ecommerce": IndustryProfile(
        name="E-commerce",
        utility_dirs=("src/cart", "src/checkout", "src/inventory", "src/orders"),
        required_utilities=("validateInventory", "calculateShipping", "processOrder"),
        critical_patterns=("cart management", "inventory validation", "order processing"),
        compliance_check=_ecommerce_gaps,
    ),
}

_ALIASES = {
    "health": "healthcare",
    "medical": "healthcare",
    "finance": "fintech",
    "banking": "fintech",
    "e-commerce": "ecommerce",
    "retail": "ecommerce",
}


def resolve_industry(industry: Optional[str]) -> Optional[IndustryProfile]:
    if not industry:
        return None
    key = industry.strip().lower()
    return INDUSTRY_PROFILES.get(_ALIASES.get(key, key))


__all__ = ["INDUSTRY_PROFILES", "IndustryProfile", "resolve_industry"]
