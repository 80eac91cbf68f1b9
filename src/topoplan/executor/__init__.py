"""Plan execution against a provider."""

from .executor import DEFAULT_MAX_WORKERS, Executor, apply, prerequisites
from .models import ApplyResult, ChangeOutcome, OutcomeStatus

__all__ = ["DEFAULT_MAX_WORKERS", "ApplyResult", "ChangeOutcome", "Executor", "OutcomeStatus", "apply", "prerequisites"]
