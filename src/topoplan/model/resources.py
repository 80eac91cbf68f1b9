"""Typed resource definitions, references and the resource set builder."""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional
from pydantic import BaseModel, Field
from ..utils.errors import DuplicateResourceError, GraphConstructionError
from ..utils.logging import get_logger
from .schemas import SchemaRegistry, default_registry

logger = get_logger("model.resources")


class ResourceKey(BaseModel):
    """Identity of a resource: type and logical name, optionally inside a module."""
    type: str = Field(..., description="Resource type, e.g. aws_vpc")
    name: str = Field(..., description="Logical name, unique per type within a module")
    module: Optional[str] = Field(None, description="Dotted module path, e.g. eks.network")

    class Config:
        frozen = True

    @property
    def address(self) -> str:
        """Address string used as the node id and state key."""
        base = f"{self.type}.{self.name}"
        if self.module:
            prefix = ".".join(f"module.{part}" for part in self.module.split("."))
            return f"{prefix}.{base}"
        return base

    @classmethod
    def parse(cls, address: str) -> "ResourceKey":
        """Parse an address produced by ``address`` back into a key."""
        parts = address.split(".")
        module_parts = []
        while len(parts) > 2 and parts[0] == "module":
            module_parts.append(parts[1])
            parts = parts[2:]
        if len(parts) != 2:
            raise ValueError(f"Invalid resource address: {address}")
        return cls(type=parts[0], name=parts[1], module=".".join(module_parts) or None)

    def __str__(self) -> str:
        return self.address


@dataclass(frozen=True)
class Ref:
    """Placeholder for another resource's output, resolved through the graph."""
    target: Any
    output: str = "id"

    def __post_init__(self):
        target = self.target
        if isinstance(target, ResourceHandle):
            target = target.key
        elif isinstance(target, str):
            target = ResourceKey.parse(target)
        if not isinstance(target, ResourceKey):
            raise TypeError(f"Ref target must be a ResourceHandle or ResourceKey, got {type(self.target).__name__}")
        object.__setattr__(self, "target", target)

    @property
    def address(self) -> str:
        return self.target.address

    def __repr__(self) -> str:
        return f"Ref({self.target.address}.{self.output})"


class _Unknown:
    """Value of a reference that cannot be known until apply."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "(known after apply)"

    def __reduce__(self):
        return (_Unknown, ())


UNKNOWN = _Unknown()


class Resource(BaseModel):
    """A declared resource: key plus attributes that may embed Ref placeholders."""
    key: ResourceKey
    attributes: Dict[str, Any] = Field(default_factory=dict)
    depends_on: List[ResourceKey] = Field(default_factory=list, description="Ordering-only dependencies")

    class Config:
        arbitrary_types_allowed = True

    @property
    def address(self) -> str:
        return self.key.address

    @property
    def type(self) -> str:
        return self.key.type

    def references(self) -> List[Ref]:
        """All Ref placeholders in the attributes, plus explicit depends_on entries."""
        refs = list(find_refs(self.attributes))
        refs.extend(Ref(key, "id") for key in self.depends_on)
        return refs


class ResourceHandle:
    """Returned by define_resource; used to build references to the resource."""

    def __init__(self, resource: Resource):
        self.resource = resource

    @property
    def key(self) -> ResourceKey:
        return self.resource.key

    @property
    def address(self) -> str:
        return self.resource.key.address

    @property
    def id(self) -> Ref:
        return Ref(self, "id")

    def ref(self, output: str = "id") -> Ref:
        return Ref(self, output)

    def __getitem__(self, output: str) -> Ref:
        return Ref(self, output)

    def __repr__(self) -> str:
        return f"ResourceHandle({self.address})"


class BuildConfig(BaseModel):
    """Cross-cutting settings applied while resources are defined."""
    default_tags: Dict[str, str] = Field(default_factory=dict)
    project: Optional[str] = None


class ResourceSet:
    """Ordered collection of resources for one graph build."""

    def __init__(
        self,
        config: Optional[BuildConfig] = None,
        schemas: Optional[SchemaRegistry] = None,
        module: Optional[str] = None,
        _resources: Optional[Dict[str, Resource]] = None,
    ):
        self.config = config or BuildConfig()
        self.schemas = schemas or default_registry()
        self.module = module
        self._resources: Dict[str, Resource] = _resources if _resources is not None else {}

    def define_resource(
        self,
        type: str,
        name: str,
        attributes: Optional[Dict[str, Any]] = None,
        depends_on: Optional[List[ResourceHandle]] = None,
    ) -> ResourceHandle:
        """Declare a resource. Refs in attributes stay unresolved."""
        for label, value in (("type", type), ("name", name)):
            if not value or "." in value:
                raise GraphConstructionError(f"Invalid resource {label} {value!r}: must be non-empty and contain no '.'")
        key = ResourceKey(type=type, name=name, module=self.module)
        if key.address in self._resources:
            raise DuplicateResourceError(key.address)

        attrs = dict(attributes or {})
        if self.config.default_tags and self.schemas.get(type).taggable:
            attrs["tags"] = {**self.config.default_tags, **(attrs.get("tags") or {})}

        resource = Resource(key=key, attributes=attrs, depends_on=[h.key for h in depends_on or []])
        self._resources[key.address] = resource
        logger.debug(f"Defined resource {key.address}")
        return ResourceHandle(resource)

    def scope(self, module_name: str) -> "ResourceSet":
        """Child builder whose resources live under a nested module path."""
        path = f"{self.module}.{module_name}" if self.module else module_name
        return ResourceSet(config=self.config, schemas=self.schemas, module=path, _resources=self._resources)

    def get(self, address: str) -> Optional[Resource]:
        return self._resources.get(address)

    def resources(self) -> List[Resource]:
        return list(self._resources.values())

    def __iter__(self) -> Iterator[Resource]:
        return iter(list(self._resources.values()))

    def __len__(self) -> int:
        return len(self._resources)

    def __contains__(self, address: str) -> bool:
        return address in self._resources


def find_refs(value: Any) -> Iterator[Ref]:
    """Yield every Ref inside a literal, list, tuple or dict, recursively."""
    if isinstance(value, Ref):
        yield value
    elif isinstance(value, dict):
        for item in value.values():
            yield from find_refs(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from find_refs(item)


def resolve_refs(value: Any, resolver: Callable[[Ref], Any]) -> Any:
    """Return a copy of value with every Ref replaced by resolver(ref)."""
    if isinstance(value, Ref):
        return resolver(value)
    if isinstance(value, dict):
        return {k: resolve_refs(v, resolver) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [resolve_refs(v, resolver) for v in value]
    return value


def contains_unknown(value: Any) -> bool:
    """True when a resolved value still holds an UNKNOWN placeholder."""
    if value is UNKNOWN:
        return True
    if isinstance(value, dict):
        return any(contains_unknown(v) for v in value.values())
    if isinstance(value, (list, tuple)):
        return any(contains_unknown(v) for v in value)
    return False


