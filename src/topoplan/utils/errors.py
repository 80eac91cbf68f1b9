"""Custom exception classes for topoplan."""

from typing import List, Optional


class TopoPlanError(Exception):
    """Base exception for all topoplan errors."""
    pass


class DuplicateResourceError(TopoPlanError):
    """Raised when a (type, name) pair is defined twice in one graph build."""

    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Resource already defined: {address}")


class GraphConstructionError(TopoPlanError):
    """Raised when dependency graph construction fails."""
    pass


class CyclicDependencyError(GraphConstructionError):
    """Raised when resource references form a cycle."""

    def __init__(self, cycle: List[str]):
        self.cycle = list(cycle)
        super().__init__(f"Dependency cycle detected: {' -> '.join(self.cycle)}")


class InvalidInputError(TopoPlanError):
    """Raised when module inputs violate their declared constraints.

    Carries every violation, not only the first one found.
    """

    def __init__(self, violations: List[str], module: Optional[str] = None):
        self.violations = list(violations)
        self.module = module
        prefix = f"Invalid inputs for module '{module}'" if module else "Invalid inputs"
        details = "; ".join(self.violations)
        super().__init__(f"{prefix}: {details}")


class ProviderError(TopoPlanError):
    """Wraps a provider failure with the resource it happened on."""

    def __init__(self, key: str, cause: BaseException):
        self.key = key
        self.cause = cause
        super().__init__(f"Provider failed for {key}: {cause}")


class BlockedDependencyError(TopoPlanError):
    """Reported for a change that was not attempted because a prerequisite failed."""

    def __init__(self, key: str, blocked_by: str):
        self.key = key
        self.blocked_by = blocked_by
        super().__init__(f"{key} blocked by failure of {blocked_by}")


class StateError(TopoPlanError):
    """Raised when the state store cannot be read or written."""
    pass


class ConfigError(TopoPlanError):
    """Raised when configuration is invalid or missing."""
    pass


class ModuleError(TopoPlanError):
    """Raised when a module is unknown or its outputs cannot be resolved."""
    pass
