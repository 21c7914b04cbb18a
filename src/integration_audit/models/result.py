"""Check outcome data models."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field

from integration_audit.models.common import AuditError, Severity


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CheckPassingResult(BaseModel):
    """A verified-compliant resource, as reported by a check."""

    model_config = {"frozen": True}

    title: str = Field(description="Short title describing what passed")
    description: str = Field(description="Why this passed, shown to auditors")
    resource_type: str = Field(description="What was checked, e.g. 'repository'")
    resource_id: str = Field(description="Identifier of the checked resource")
    evidence: dict[str, Any] = Field(description="Snapshot proving the pass")


class CheckFindingResult(BaseModel):
    """A non-compliant resource, as reported by a check."""

    model_config = {"frozen": True}

    title: str = Field(description="Short title describing the issue")
    description: str = Field(description="Detailed explanation of the issue")
    resource_type: str = Field(description="Type of the affected resource")
    resource_id: str = Field(description="Identifier of the affected resource")
    severity: Severity = Field(description="Compliance impact")
    remediation: str = Field(description="How to fix the issue")
    evidence: dict[str, Any] | None = Field(default=None, description="Supporting context")


class IntegrationFinding(BaseModel):
    """Finding shape accepted by ``add_finding`` for checks using raw payload evidence."""

    model_config = {"frozen": True}

    resource_type: str
    resource_id: str
    title: str
    description: str | None = None
    severity: Severity
    remediation: str | None = None
    raw_payload: dict[str, Any] | None = None


class IntegrationPassingResult(BaseModel):
    """Passing shape accepted by ``add_passing_result``."""

    model_config = {"frozen": True}

    resource_type: str
    resource_id: str
    title: str
    description: str | None = None
    evidence: dict[str, Any] | None = None


class Finding(CheckFindingResult):
    """A recorded finding."""

    status: Literal["open"] = "open"


class PassingResult(CheckPassingResult):
    """A recorded passing result."""

    collected_at: datetime = Field(default_factory=utcnow)


class CheckRunLog(BaseModel):
    """A log line captured during a check run."""

    model_config = {"frozen": True}

    level: Literal["info", "warn", "error"]
    message: str
    data: dict[str, Any] | None = None
    timestamp: datetime = Field(default_factory=utcnow)


class CheckRunSummary(BaseModel):
    """Counts for a single check run."""

    model_config = {"frozen": True}

    total_checked: int = 0
    passed: int = 0
    failed: int = 0


class CheckRunResult(BaseModel):
    """Everything a single check execution produced."""

    model_config = {"frozen": True}

    findings: list[Finding] = Field(default_factory=list)
    passing_results: list[PassingResult] = Field(default_factory=list)
    logs: list[CheckRunLog] = Field(default_factory=list)
    summary: CheckRunSummary = Field(default_factory=CheckRunSummary)

    @property
    def has_findings(self) -> bool:
        return bool(self.findings)

    def findings_by_severity(self, severity: Severity) -> list[Finding]:
        """Get findings with the given severity."""
        return [f for f in self.findings if f.severity == severity]


class CheckStatus(str, Enum):
    """Outcome of one check execution."""

    SUCCESS = "success"
    FAILED = "failed"
    ERROR = "error"


class CheckExecution(BaseModel):
    """A check run as seen by the orchestrator."""

    model_config = {"frozen": True}

    check_id: str
    check_name: str
    status: CheckStatus
    result: CheckRunResult
    error: AuditError | None = Field(
        default=None,
        description="Set when the check's run routine raised instead of completing",
    )
    duration_ms: int = 0


class RunAllResult(BaseModel):
    """Aggregated executions for one manifest and connection."""

    model_config = {"frozen": True}

    manifest_id: str
    connection_id: str
    results: list[CheckExecution] = Field(default_factory=list)
    total_findings: int = 0
    total_passing: int = 0

    @property
    def errored(self) -> list[CheckExecution]:
        """Executions whose run routine raised."""
        return [r for r in self.results if r.status == CheckStatus.ERROR]

    @property
    def success(self) -> bool:
        """True when every check completed without findings."""
        return all(r.status == CheckStatus.SUCCESS for r in self.results)

    @classmethod
    def from_executions(
        cls,
        manifest_id: str,
        connection_id: str,
        executions: list[CheckExecution],
    ) -> "RunAllResult":
        """Build the aggregate, keeping execution order."""
        return cls(
            manifest_id=manifest_id,
            connection_id=connection_id,
            results=executions,
            total_findings=sum(len(e.result.findings) for e in executions),
            total_passing=sum(len(e.result.passing_results) for e in executions),
        )
