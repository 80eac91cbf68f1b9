"""In-memory provider: a thread-safe fake cloud for tests and dry runs."""

import hashlib
import threading
import time
import uuid
from typing import Any, Dict, List, Optional, Tuple
from ..model.schemas import SchemaRegistry
from ..utils.logging import get_logger
from .base import Provider

logger = get_logger("providers.memory")


class InjectedFailure(RuntimeError):
    """Raised by InMemoryProvider when an injected failure rule matches."""
    pass


class InMemoryProvider(Provider):
    """Keeps resources in a dict and synthesises AWS-like identifiers and outputs.

    With strict=False, identifiers from an earlier process are adopted on
    update and ignored on delete, so state files survive provider restarts.
    """

    def __init__(
        self,
        schemas: Optional[SchemaRegistry] = None,
        region: str = "us-east-1",
        account_id: str = "000000000000",
        delay: float = 0.0,
        strict: bool = True,
    ):
        super().__init__(schemas)
        self.strict = strict
        self.region = region
        self.account_id = account_id
        self.delay = delay
        self.resources: Dict[str, Dict[str, Any]] = {}
        self.calls: List[Tuple[str, str, str]] = []
        self.max_in_flight = 0
        self._in_flight = 0
        self._failures: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def inject_failure(
        self,
        operation: str = "create",
        resource_type: Optional[str] = None,
        match: Optional[Dict[str, Any]] = None,
        error: Optional[BaseException] = None,
    ) -> None:
        """Fail calls of an operation whose type and attributes match."""
        self._failures.append({
            "operation": operation,
            "resource_type": resource_type,
            "match": dict(match or {}),
            "error": error,
        })

    def create(self, resource_type: str, attributes: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
        self._enter()
        try:
            self._check_failure("create", resource_type, attributes)
            with self._lock:
                prefix = self.schemas.get(resource_type).id_prefix
                identifier = f"{prefix}-{uuid.uuid4().hex[:17]}"
                outputs = self._outputs(resource_type, identifier, attributes)
                self.resources[identifier] = {"type": resource_type, "attributes": dict(attributes), "outputs": outputs}
                self.calls.append(("create", resource_type, identifier))
            logger.debug(f"Created {resource_type} {identifier}")
            return identifier, dict(outputs)
        finally:
            self._leave()

    def update(self, identifier: str, resource_type: str, attributes: Dict[str, Any]) -> Dict[str, Any]:
        self._enter()
        try:
            self._check_failure("update", resource_type, attributes)
            with self._lock:
                if identifier not in self.resources and self.strict:
                    raise LookupError(f"{resource_type} {identifier} does not exist")
                outputs = self._outputs(resource_type, identifier, attributes)
                previous = self.resources.get(identifier, {}).get("outputs", {})
                for name in self.schemas.get(resource_type).computed_outputs:
                    if name in previous:
                        outputs[name] = previous[name]
                self.resources[identifier] = {"type": resource_type, "attributes": dict(attributes), "outputs": outputs}
                self.calls.append(("update", resource_type, identifier))
            return dict(outputs)
        finally:
            self._leave()

    def delete(self, identifier: str, resource_type: str) -> None:
        self._enter()
        try:
            with self._lock:
                existing = self.resources.get(identifier)
            self._check_failure("delete", resource_type, existing["attributes"] if existing else {})
            with self._lock:
                if self.resources.pop(identifier, None) is None and self.strict:
                    raise LookupError(f"{resource_type} {identifier} does not exist")
                self.calls.append(("delete", resource_type, identifier))
        finally:
            self._leave()

    def _check_failure(self, operation: str, resource_type: str, attributes: Dict[str, Any]) -> None:
        for rule in self._failures:
            if rule["operation"] != operation:
                continue
            if rule["resource_type"] and rule["resource_type"] != resource_type:
                continue
            if any(attributes.get(k) != v for k, v in rule["match"].items()):
                continue
            raise rule["error"] or InjectedFailure(f"injected {operation} failure for {resource_type}")

    def _enter(self) -> None:
        with self._lock:
            self._in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self._in_flight)
        if self.delay:
            time.sleep(self.delay)

    def _leave(self) -> None:
        with self._lock:
            self._in_flight -= 1

    def _outputs(self, resource_type: str, identifier: str, attributes: Dict[str, Any]) -> Dict[str, Any]:
        schema = self.schemas.get(resource_type)
        digest = hashlib.sha256(identifier.encode("utf-8")).hexdigest()[:32].upper()
        outputs = dict(attributes)
        outputs["id"] = identifier

        if resource_type == "aws_iam_role":
            outputs["arn"] = f"arn:aws:iam::{self.account_id}:role/{attributes.get('name', identifier)}"
        elif resource_type == "aws_iam_openid_connect_provider":
            url = str(attributes.get("url", identifier)).replace("https://", "")
            outputs["arn"] = f"arn:aws:iam::{self.account_id}:oidc-provider/{url}"
        else:
            outputs["arn"] = f"arn:aws:{schema.service}:{self.region}:{self.account_id}:{resource_type}/{identifier}"

        if resource_type == "aws_vpc":
            outputs["default_route_table_id"] = f"rtb-{digest[:8].lower()}"
        elif resource_type == "aws_eip":
            outputs["public_ip"] = f"203.0.113.{int(digest[:2], 16) % 254 + 1}"
        elif resource_type == "aws_eks_cluster":
            outputs["endpoint"] = f"https://{digest}.gr7.{self.region}.eks.amazonaws.com"
            outputs["oidc_issuer"] = f"https://oidc.eks.{self.region}.amazonaws.com/id/{digest}"
            outputs["certificate_authority"] = hashlib.sha256(digest.encode("utf-8")).hexdigest()
        return outputs
