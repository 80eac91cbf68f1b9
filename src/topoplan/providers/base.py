"""Provider interface: the only boundary to a real cloud API."""

from abc import ABC, abstractmethod
from typing import Any, Dict, FrozenSet, Optional, Tuple
from ..model.schemas import SchemaRegistry, default_registry


class Provider(ABC):
    """Base class for resource providers.

    Implementations raise any exception to signal failure; the executor wraps
    it in a ProviderError together with the resource address.
    """

    def __init__(self, schemas: Optional[SchemaRegistry] = None):
        self.schemas = schemas or default_registry()

    @abstractmethod
    def create(self, resource_type: str, attributes: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
        """Create a resource.

        Args:
            resource_type: Resource type, e.g. aws_vpc
            attributes: Fully resolved attributes

        Returns:
            (identifier, output attributes)
        """
        pass

    @abstractmethod
    def update(self, identifier: str, resource_type: str, attributes: Dict[str, Any]) -> Dict[str, Any]:
        """Update an existing resource in place and return its outputs."""
        pass

    @abstractmethod
    def delete(self, identifier: str, resource_type: str) -> None:
        """Delete a resource by identifier."""
        pass

    def immutable_attributes(self, resource_type: str) -> FrozenSet[str]:
        """Attributes of a type that can only change through replacement."""
        return self.schemas.immutable_attributes(resource_type)
