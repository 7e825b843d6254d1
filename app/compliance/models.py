from dataclasses import dataclass
from enum import Enum


class ComplianceStatus(str, Enum):
    NON_COMPLIANT = "non_compliant"
    PARTIALLY_COMPLIANT = "partially_compliant"
    COMPLIANT = "compliant"

    @property
    def rank(self) -> int:
        return _RANKS[self]


_RANKS = {
    ComplianceStatus.NON_COMPLIANT: 0,
    ComplianceStatus.PARTIALLY_COMPLIANT: 1,
    ComplianceStatus.COMPLIANT: 2,
}


@dataclass(frozen=True)
class ComplianceResult:
    """Derived verdict for one entity; never stored."""

    document_count: int
    required_present_count: int
    required_total_count: int
    optional_present_count: int
    optional_total_count: int
    overall_status: ComplianceStatus
