"""Pydantic models for plans and the changes they contain."""

from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from ..model.resources import UNKNOWN, Resource
from ..state.store import StateRecord


class Action(str, Enum):
    """Planned action for one resource."""
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    NO_OP = "no-op"


class Change(BaseModel):
    """A single planned change to one resource."""
    address: str = Field(..., description="Resource address")
    type: str = Field(..., description="Resource type")
    action: Action = Field(..., description="Planned action")
    reason: str = Field(..., description="Why this action was chosen")
    attributes: Dict[str, Any] = Field(default_factory=dict, description="Desired attributes resolved against prior state")
    changed_attributes: List[str] = Field(default_factory=list, description="Attributes that differ from prior state")
    dependencies: List[str] = Field(default_factory=list, description="Addresses referenced in the desired config")
    prior: Optional[StateRecord] = Field(None, description="Prior state record, if any")
    replacement: bool = Field(False, description="Part of a delete-then-create replacement")
    resource: Optional[Resource] = Field(None, description="Desired resource with unresolved references")

    class Config:
        arbitrary_types_allowed = True

    @property
    def prior_dependencies(self) -> List[str]:
        return list(self.prior.dependencies) if self.prior else []

    @property
    def is_noop(self) -> bool:
        return self.action == Action.NO_OP

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe view used by the CLI."""
        return {
            "address": self.address,
            "type": self.type,
            "action": self.action.value,
            "reason": self.reason,
            "replacement": self.replacement,
            "changed_attributes": list(self.changed_attributes),
            "attributes": _json_safe(self.attributes),
            "identifier": self.prior.identifier if self.prior else None,
        }


class Plan(BaseModel):
    """Ordered change-set; dependencies precede dependents, deletes run in reverse."""
    changes: List[Change] = Field(default_factory=list)
    destroy: bool = Field(False, description="Plan produced for a full teardown")

    @property
    def has_changes(self) -> bool:
        return any(c.action != Action.NO_OP for c in self.changes)

    def summary(self) -> Dict[str, int]:
        """Count of changes per action; replacements are counted once each."""
        counts = {action.value: 0 for action in Action}
        counts["replace"] = 0
        for change in self.changes:
            if change.replacement:
                if change.action == Action.CREATE:
                    counts["replace"] += 1
                continue
            counts[change.action.value] += 1
        return counts

    def index_of(self, address: str, action: Optional[Action] = None) -> int:
        """Position of the first change for address (optionally with a given action)."""
        for idx, change in enumerate(self.changes):
            if change.address == address and (action is None or change.action == action):
                return idx
        raise KeyError(f"No change for {address}" + (f" with action {action.value}" if action else ""))

    def actions(self) -> List[tuple]:
        """(action, address) pairs in order; handy for assertions and display."""
        return [(c.action.value, c.address) for c in self.changes]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "destroy": self.destroy,
            "summary": self.summary(),
            "changes": [c.to_dict() for c in self.changes],
        }


def _json_safe(value: Any) -> Any:
    if value is UNKNOWN:
        return repr(UNKNOWN)
    if isinstance(value, dict):
        return {k: _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    return value
