"""Pydantic models describing the outcome of an apply run."""

from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from ..planner.models import Action
from ..utils.errors import BlockedDependencyError, ProviderError


class OutcomeStatus(str, Enum):
    """Terminal status of one planned change."""
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    UNCHANGED = "unchanged"
    FAILED = "failed"
    BLOCKED = "blocked"
    CANCELED = "canceled"


SUCCESS_STATUSES = frozenset({
    OutcomeStatus.CREATED,
    OutcomeStatus.UPDATED,
    OutcomeStatus.DELETED,
    OutcomeStatus.UNCHANGED,
})


class ChangeOutcome(BaseModel):
    """What happened to one change of the plan."""
    address: str
    action: Action
    status: OutcomeStatus
    replacement: bool = False
    identifier: Optional[str] = None
    error: Optional[str] = None
    blocked_by: Optional[str] = None


class ApplyResult(BaseModel):
    """Per-change outcomes in plan order, plus the errors behind failures."""
    outcomes: List[ChangeOutcome] = Field(default_factory=list)
    errors: List[ProviderError] = Field(default_factory=list)
    blocked: List[BlockedDependencyError] = Field(default_factory=list)
    canceled: bool = Field(False, description="Run stopped dispatching because of cancellation")
    outputs: Dict[str, Any] = Field(default_factory=dict, description="Module outputs resolved after apply")

    class Config:
        arbitrary_types_allowed = True

    @property
    def success(self) -> bool:
        return all(o.status in SUCCESS_STATUSES for o in self.outcomes)

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1

    def by_status(self) -> Dict[str, List[str]]:
        """Addresses grouped by status, each list in plan order."""
        grouped: Dict[str, List[str]] = {status.value: [] for status in OutcomeStatus}
        for outcome in self.outcomes:
            grouped[outcome.status.value].append(outcome.address)
        return grouped

    def status_of(self, address: str) -> Optional[OutcomeStatus]:
        """Final status for an address; a replacement reports its create half."""
        status = None
        for outcome in self.outcomes:
            if outcome.address == address:
                status = outcome.status
        return status

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "canceled": self.canceled,
            "outputs": self.outputs,
            "summary": {k: len(v) for k, v in self.by_status().items()},
            "outcomes": [o.model_dump(mode="json") for o in self.outcomes],
        }
