"""Apply a plan through a provider, concurrently across independent branches."""

import heapq
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set
from ..model.resources import Ref, resolve_refs
from ..planner.models import Action, Change, Plan
from ..providers.base import Provider
from ..state.store import StateRecord, StateStore
from ..utils.errors import BlockedDependencyError, ProviderError, TopoPlanError
from ..utils.logging import get_logger
from .models import ApplyResult, ChangeOutcome, OutcomeStatus

logger = get_logger("executor.executor")

DEFAULT_MAX_WORKERS = 4

_SUCCESS_STATUS = {
    Action.CREATE: OutcomeStatus.CREATED,
    Action.UPDATE: OutcomeStatus.UPDATED,
    Action.DELETE: OutcomeStatus.DELETED,
    Action.NO_OP: OutcomeStatus.UNCHANGED,
}


def prerequisites(changes: List[Change]) -> List[Set[int]]:
    """
    For each change, the indexes of earlier changes it must wait for.

    A create, update or no-op waits for the latest earlier change of every
    resource it references and for its own replacement delete. A delete of X
    waits for every earlier change to a resource whose prior state depended
    on X.
    """
    latest: Dict[str, int] = {}
    waits: List[Set[int]] = []
    for idx, change in enumerate(changes):
        required: Set[int] = set()
        if change.address in latest:
            required.add(latest[change.address])
        if change.action == Action.DELETE:
            for earlier in range(idx):
                if change.address in changes[earlier].prior_dependencies:
                    required.add(earlier)
        else:
            for dep in change.dependencies:
                if dep in latest:
                    required.add(latest[dep])
        waits.append(required)
        latest[change.address] = idx
    return waits


class Executor:
    """Runs plan changes against a provider and persists state after each success."""

    def __init__(self, provider: Provider, store: StateStore, max_workers: int = DEFAULT_MAX_WORKERS):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.provider = provider
        self.store = store
        self.max_workers = max_workers

    def apply(self, plan: Plan, cancel_event: Optional[threading.Event] = None) -> ApplyResult:
        """
        Apply a plan.

        Changes whose prerequisites have all succeeded are dispatched to a
        worker pool. A failure blocks everything that transitively waits on
        it; independent branches keep going. Once cancel_event is set no new
        change is dispatched, but in-flight ones finish and are persisted.

        Args:
            plan: Plan produced by the planner
            cancel_event: Optional event that stops further dispatching

        Returns:
            ApplyResult with one outcome per change, in plan order
        """
        changes = plan.changes
        waits = prerequisites(changes)
        followers: List[List[int]] = [[] for _ in changes]
        for idx, required in enumerate(waits):
            for earlier in required:
                followers[earlier].append(idx)

        outcomes: Dict[int, ChangeOutcome] = {}
        errors: List[ProviderError] = []
        blocked: List[BlockedDependencyError] = []
        pending = {idx: set(required) for idx, required in enumerate(waits)}
        ready = [idx for idx, required in enumerate(waits) if not required]
        heapq.heapify(ready)
        canceled = False

        logger.info(f"Applying {len(changes)} changes with up to {self.max_workers} workers")

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="topoplan-apply") as pool:
            in_flight: Dict[Future, int] = {}

            while ready or in_flight:
                if cancel_event is not None and cancel_event.is_set():
                    if not canceled:
                        logger.warning("Cancellation requested, waiting for in-flight changes")
                    canceled = True
                else:
                    while ready:
                        idx = heapq.heappop(ready)
                        if idx in outcomes:
                            continue
                        logger.debug(f"Dispatching {changes[idx].action.value} {changes[idx].address}")
                        in_flight[pool.submit(self._run, changes[idx])] = idx

                if not in_flight:
                    break

                done, _ = wait(list(in_flight), return_when=FIRST_COMPLETED)
                for future in done:
                    idx = in_flight.pop(future)
                    change = changes[idx]
                    try:
                        outcomes[idx] = future.result()
                    except Exception as e:
                        error = e if isinstance(e, ProviderError) else ProviderError(change.address, e)
                        logger.error(
                            f"Failed to {change.action.value} {change.address}: {error.cause}",
                            exc_info=not isinstance(e, TopoPlanError),
                        )
                        errors.append(error)
                        outcomes[idx] = ChangeOutcome(
                            address=change.address,
                            action=change.action,
                            status=OutcomeStatus.FAILED,
                            replacement=change.replacement,
                            identifier=change.prior.identifier if change.prior else None,
                            error=str(error),
                        )
                        blocked.extend(self._block_followers(idx, changes, followers, outcomes))
                        continue

                    for follower in followers[idx]:
                        pending[follower].discard(idx)
                        if not pending[follower] and follower not in outcomes:
                            heapq.heappush(ready, follower)

        for idx, change in enumerate(changes):
            if idx not in outcomes:
                canceled = True
                outcomes[idx] = ChangeOutcome(
                    address=change.address,
                    action=change.action,
                    status=OutcomeStatus.CANCELED,
                    replacement=change.replacement,
                    identifier=change.prior.identifier if change.prior else None,
                )

        result = ApplyResult(
            outcomes=[outcomes[idx] for idx in range(len(changes))],
            errors=errors,
            blocked=blocked,
            canceled=canceled,
        )
        counts = {k: len(v) for k, v in result.by_status().items() if v}
        logger.info(f"Apply finished ({'success' if result.success else 'incomplete'}): {counts}")
        return result

    def _block_followers(
        self,
        failed_idx: int,
        changes: List[Change],
        followers: List[List[int]],
        outcomes: Dict[int, ChangeOutcome],
    ) -> List[BlockedDependencyError]:
        """Mark every change transitively waiting on failed_idx as blocked."""
        failed_address = changes[failed_idx].address
        blocked = []
        stack = list(followers[failed_idx])
        while stack:
            idx = stack.pop()
            if idx in outcomes:
                continue
            change = changes[idx]
            error = BlockedDependencyError(change.address, failed_address)
            logger.warning(str(error))
            blocked.append(error)
            outcomes[idx] = ChangeOutcome(
                address=change.address,
                action=change.action,
                status=OutcomeStatus.BLOCKED,
                replacement=change.replacement,
                identifier=change.prior.identifier if change.prior else None,
                error=str(error),
                blocked_by=failed_address,
            )
            stack.extend(followers[idx])
        return sorted(blocked, key=lambda e: e.key)

    def _run(self, change: Change) -> ChangeOutcome:
        """Apply one change and persist the result; runs on a worker thread."""
        if change.action == Action.NO_OP:
            return self._outcome(change, change.prior.identifier if change.prior else None)

        if change.action == Action.DELETE:
            try:
                self.provider.delete(change.prior.identifier, change.type)
            except Exception as e:
                raise ProviderError(change.address, e) from e
            self.store.delete(change.address)
            logger.info(f"Deleted {change.address} ({change.prior.identifier})")
            return self._outcome(change, change.prior.identifier)

        attributes = resolve_refs(change.resource.attributes, self._resolve_applied(change.address))

        if change.action == Action.CREATE:
            try:
                identifier, outputs = self.provider.create(change.type, attributes)
            except Exception as e:
                raise ProviderError(change.address, e) from e
        else:
            identifier = change.prior.identifier
            try:
                outputs = self.provider.update(identifier, change.type, attributes)
            except Exception as e:
                raise ProviderError(change.address, e) from e

        now = datetime.now(timezone.utc)
        with self.store.lock_for(change.address):
            current = self.store.get(change.address)
            created_at = current.created_at if (current is not None and change.action == Action.UPDATE) else now
            record = StateRecord(
                address=change.address,
                type=change.type,
                identifier=identifier,
                attributes=attributes,
                outputs=dict(outputs or {}),
                dependencies=list(change.dependencies),
                created_at=created_at,
                updated_at=now,
            )
            self.store.save(change.address, record)

        logger.info(f"{_SUCCESS_STATUS[change.action].value.capitalize()} {change.address} ({identifier})")
        return self._outcome(change, identifier)

    def _resolve_applied(self, address: str):
        def resolve(ref: Ref) -> Any:
            record = self.store.get(ref.address)
            if record is None:
                raise ProviderError(address, LookupError(f"{ref.address} has not been applied"))
            if not record.has_output(ref.output):
                raise ProviderError(address, LookupError(f"{ref.address} has no output '{ref.output}'"))
            return record.output(ref.output)
        return resolve

    @staticmethod
    def _outcome(change: Change, identifier: Optional[str]) -> ChangeOutcome:
        return ChangeOutcome(
            address=change.address,
            action=change.action,
            status=_SUCCESS_STATUS[change.action],
            replacement=change.replacement,
            identifier=identifier,
        )


def apply(plan: Plan, provider: Provider, store: StateStore, max_workers: int = DEFAULT_MAX_WORKERS,
          cancel_event: Optional[threading.Event] = None) -> ApplyResult:
    """Apply a plan with a fresh Executor."""
    return Executor(provider, store, max_workers=max_workers).apply(plan, cancel_event=cancel_event)
