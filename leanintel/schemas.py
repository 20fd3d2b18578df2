"""Pydantic models for the JSON reports produced by the analyzers.

Only the core of each report is required; anything else the model adds is kept
as an extra field so richer reports survive validation.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Literal, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

Grade = Literal["A", "B", "C", "D", "F"]
SEVERITIES = ("Critical", "High", "Medium", "Low", "Informational")

_EMOJI = re.compile(r"[\U0001F300-\U0001F9FF\u2600-\u26FF\u2700-\u27BF]")


def clean_severity(value: Any) -> str:
    """Map free-form severities ("📊 Low", "Moderate", "minimal") onto the five levels."""
    if not isinstance(value, str) or not value.strip():
        return "Informational"
    cleaned = _EMOJI.sub("", value).strip()
    lowered = cleaned.lower()
    if "critical" in lowered:
        return "Critical"
    if "high" in lowered:
        return "High"
    if "medium" in lowered or "moderate" in lowered:
        return "Medium"
    if "low" in lowered or "minimal" in lowered:
        return "Low"
    return "Informational"


class ReportModel(BaseModel):
    """camelCase on the wire, snake_case in Python, unknown keys preserved."""

    model_config = ConfigDict(
        extra="allow",
        populate_by_name=True,
        alias_generator=to_camel,
    )


class SeverityModel(ReportModel):
    severity: str = "Informational"

    @field_validator("severity", mode="before")
    @classmethod
    def _normalize_severity(cls, value: Any) -> str:
        return clean_severity(value)


class GradedReport(ReportModel):
    overall_grade: Grade
    score: float = Field(ge=0, le=100)
    summary: str

    @field_validator("overall_grade", mode="before")
    @classmethod
    def _normalize_grade(cls, value: Any) -> Any:
        # "B+" and " c " are common; the letter is what matters.
        if isinstance(value, str) and value.strip():
            return value.strip()[0].upper()
        return value


# Security


class SecurityIssue(SeverityModel):
    category: str
    issue: str
    location: str = ""
    impact: str = ""
    remediation: str = ""
    cve_id: Optional[str] = None


class DependencyVulnerability(ReportModel):
    package: str
    current_version: str = ""
    vulnerability: str
    severity: str = ""
    fixed_version: Optional[str] = None
    cve_id: Optional[str] = None

    @field_validator("severity", mode="before")
    @classmethod
    def _normalize_severity(cls, value: Any) -> str:
        return clean_severity(value)


class HardcodedSecret(ReportModel):
    type: str
    file: str
    line: Optional[int] = None
    pattern: str = ""


class InsecurePattern(ReportModel):
    pattern: str
    file: str
    line: Optional[int] = None
    risk: str = ""


class SecurityVulnerabilities(ReportModel):
    dependencies: List[DependencyVulnerability] = Field(default_factory=list)
    hardcoded_secrets: List[HardcodedSecret] = Field(default_factory=list)
    insecure_patterns: List[InsecurePattern] = Field(default_factory=list)


class SecurityReport(GradedReport):
    critical_issues: List[SecurityIssue] = Field(default_factory=list)
    vulnerabilities: SecurityVulnerabilities = Field(default_factory=SecurityVulnerabilities)
    recommendations: List[str] = Field(default_factory=list)


# License


class LicenseRisk(SeverityModel):
    package: str
    version: str = ""
    license: str
    risk: str = ""
    impact: str = ""
    remediation: str = ""


class LicenseGroup(ReportModel):
    name: str
    count: int = 0
    examples: List[str] = Field(default_factory=list)


class LicenseBreakdown(ReportModel):
    permissive: List[LicenseGroup] = Field(default_factory=list)
    weak_copyleft: List[LicenseGroup] = Field(default_factory=list)
    strong_copyleft: List[LicenseGroup] = Field(default_factory=list)
    unknown: List[LicenseGroup] = Field(default_factory=list)


class LicenseReport(GradedReport):
    dealbreakers: List[LicenseRisk] = Field(default_factory=list)
    license_breakdown: LicenseBreakdown = Field(default_factory=LicenseBreakdown)
    recommendations: List[str] = Field(default_factory=list)


# Quality


class CodeSmell(SeverityModel):
    smell: str
    occurrences: int = 0
    examples: List[str] = Field(default_factory=list)
    impact: str = ""


class QualityMetrics(ReportModel):
    lines_of_code: int = 0
    code_files: int = 0
    test_files: int = 0
    test_coverage: Optional[float] = None
    avg_file_size: float = 0
    complex_functions: int = 0


class DebtItem(ReportModel):
    type: str
    description: str
    location: Optional[str] = None
    impact: str = ""
    effort_to_fix: str = ""
    cost: str = ""


class TechnicalDebt(SeverityModel):
    category: str = ""
    issues: List[DebtItem] = Field(default_factory=list)
    total_remediation_cost: str = ""
    total_remediation_time: str = ""


class QualityReport(GradedReport):
    quality_score: Optional[float] = Field(default=None, ge=0, le=100)
    technical_debt_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    metrics: QualityMetrics = Field(default_factory=QualityMetrics)
    technical_debt: TechnicalDebt = Field(default_factory=TechnicalDebt)
    code_smells: List[CodeSmell] = Field(default_factory=list)
    recommendations: List[Union[str, Dict[str, Any]]] = Field(default_factory=list)


# Cost


class Bottleneck(SeverityModel):
    bottleneck: str
    current_impact: str = ""
    scale_limit: str = ""
    cost_at_scale: str = ""
    remediation: str = ""
    remediation_cost: str = ""


class ScalingProjection(ReportModel):
    scale: str
    users: Union[int, float, str] = 0
    estimated_cost: str = ""
    gross_margin: str = ""
    notes: str = ""


class CostReport(GradedReport):
    unit_economics: Dict[str, Any] = Field(default_factory=dict)
    current_scale: Dict[str, Any] = Field(default_factory=dict)
    scaling_projections: List[ScalingProjection] = Field(default_factory=list)
    bottlenecks: List[Bottleneck] = Field(default_factory=list)
    recommendations: List[Union[str, Dict[str, Any]]] = Field(default_factory=list)


# HIPAA


class ComplianceGap(ReportModel):
    regulation: str
    requirement: str = ""
    status: str = ""
    finding: str
    evidence: Optional[str] = None
    risk: str = ""
    remediation: str = ""
    cost: str = ""

    @field_validator("risk", mode="before")
    @classmethod
    def _normalize_risk(cls, value: Any) -> str:
        return clean_severity(value)


class Violation(SeverityModel):
    violation: str = ""
    location: str = ""
    remediation: str = ""


class HipaaReport(GradedReport):
    phi_data_flow: Dict[str, Any] = Field(default_factory=dict)
    compliance_gaps: List[ComplianceGap] = Field(default_factory=list)
    technical_safeguards: Dict[str, Any] = Field(default_factory=dict)
    violations: List[Violation] = Field(default_factory=list)
    recommendations: List[Union[str, Dict[str, Any]]] = Field(default_factory=list)


ANALYZER_SCHEMAS: Dict[str, Type[GradedReport]] = {
    "security": SecurityReport,
    "license": LicenseReport,
    "quality": QualityReport,
    "cost": CostReport,
    "hipaa": HipaaReport,
}


__all__ = [
    "ANALYZER_SCHEMAS",
    "CostReport",
    "GradedReport",
    "HipaaReport",
    "LicenseReport",
    "QualityReport",
    "ReportModel",
    "SEVERITIES",
    "SecurityReport",
    "clean_severity",
]
