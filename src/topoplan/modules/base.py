"""Module input/output contract: validated inputs in, resolved outputs out."""

import ipaddress
import re
from typing import Any, Callable, Dict, List, Optional
from pydantic import BaseModel, Field, ValidationError, create_model
from ..model.resources import ResourceSet, find_refs, resolve_refs
from ..state.store import StateStore
from ..utils.errors import InvalidInputError, ModuleError
from ..utils.logging import get_logger

logger = get_logger("modules.base")

INPUT_TYPES: Dict[str, Any] = {
    "string": str,
    "number": float,
    "integer": int,
    "bool": bool,
    "list": List[Any],
    "list(string)": List[str],
    "map": Dict[str, Any],
    "map(string)": Dict[str, str],
    "cidr": str,
}

_REQUIRED = ...


class InputSpec(BaseModel):
    """Declared module parameter with its constraints."""
    name: str
    type: str = Field("string", description="One of INPUT_TYPES")
    default: Any = Field(None, description="Default value; None with required=True means mandatory")
    required: bool = True
    description: str = ""
    choices: Optional[List[Any]] = None
    pattern: Optional[str] = None
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    min_items: Optional[int] = None
    validator: Optional[Callable[[Any], Optional[str]]] = Field(None, description="Returns an error message or None")

    class Config:
        arbitrary_types_allowed = True

    @property
    def is_mandatory(self) -> bool:
        return self.required and self.default is None


def validate_inputs(specs: List[InputSpec], values: Dict[str, Any], module: Optional[str] = None,
                    checks: Optional[Callable[[Dict[str, Any]], List[str]]] = None) -> Dict[str, Any]:
    """
    Validate and coerce module inputs, collecting every violation.

    Args:
        specs: Declared inputs
        values: Caller-provided values
        module: Module name used in the error message
        checks: Optional cross-input check returning extra violation messages

    Returns:
        Validated values with defaults applied

    Raises:
        InvalidInputError: Listing every violated constraint
    """
    violations: List[str] = []
    known = {spec.name for spec in specs}
    for name in values:
        if name not in known:
            violations.append(f"{name}: unknown input")

    for spec in specs:
        if spec.type not in INPUT_TYPES:
            raise ModuleError(f"Input '{spec.name}' has unsupported type '{spec.type}'")

    fields = {}
    for idx, spec in enumerate(specs):
        default = _REQUIRED if spec.is_mandatory else spec.default
        annotation = INPUT_TYPES[spec.type] if spec.is_mandatory or spec.default is not None else Optional[INPUT_TYPES[spec.type]]
        fields[f"input_{idx}"] = (annotation, Field(default, alias=spec.name))
    model = create_model(f"{(module or 'module').title()}Inputs", **fields)

    coerced: Dict[str, Any] = {}
    failed = set()
    try:
        instance = model.model_validate({k: v for k, v in values.items() if k in known})
        coerced = {spec.name: getattr(instance, f"input_{idx}") for idx, spec in enumerate(specs)}
    except ValidationError as e:
        for error in e.errors():
            loc = error["loc"]
            name = loc[0] if loc else "?"
            detail = ".".join(str(part) for part in loc[1:])
            failed.add(name)
            violations.append(f"{name}{'[' + detail + ']' if detail else ''}: {error['msg']}")
        for spec in specs:
            if spec.name not in failed:
                coerced[spec.name] = values.get(spec.name, spec.default)

    for spec in specs:
        if spec.name in failed:
            continue
        value = coerced.get(spec.name)
        if value is None:
            continue
        violations.extend(_check_constraints(spec, value))

    if checks is not None and not failed:
        violations.extend(checks(coerced))

    if violations:
        raise InvalidInputError(violations, module=module)

    logger.debug(f"Validated {len(specs)} inputs for module {module}")
    return coerced


def _check_constraints(spec: InputSpec, value: Any) -> List[str]:
    problems = []
    if spec.choices is not None and value not in spec.choices:
        problems.append(f"{spec.name}: must be one of {spec.choices}, got {value!r}")
    if spec.pattern is not None and isinstance(value, str) and not re.fullmatch(spec.pattern, value):
        problems.append(f"{spec.name}: {value!r} does not match pattern {spec.pattern}")
    if spec.min_value is not None and isinstance(value, (int, float)) and value < spec.min_value:
        problems.append(f"{spec.name}: must be >= {spec.min_value}, got {value}")
    if spec.max_value is not None and isinstance(value, (int, float)) and value > spec.max_value:
        problems.append(f"{spec.name}: must be <= {spec.max_value}, got {value}")
    if spec.min_items is not None and isinstance(value, (list, dict)) and len(value) < spec.min_items:
        problems.append(f"{spec.name}: needs at least {spec.min_items} items, got {len(value)}")
    if spec.type == "cidr":
        try:
            ipaddress.ip_network(value, strict=True)
        except ValueError as e:
            problems.append(f"{spec.name}: invalid CIDR block: {e}")
    if spec.validator is not None:
        message = spec.validator(value)
        if message:
            problems.append(f"{spec.name}: {message}")
    return problems


class ModuleInstance:
    """A module built into a resource set, with its unresolved outputs."""

    def __init__(self, module: "Module", inputs: Dict[str, Any], resources: ResourceSet, outputs: Dict[str, Any]):
        self.module = module
        self.inputs = inputs
        self.resources = resources
        self.outputs = outputs

    def resolve_outputs(self, store: StateStore, strict: bool = False) -> Dict[str, Any]:
        """
        Resolve outputs against applied state as a flat mapping.

        Outputs that reference unapplied resources are omitted (or raise
        ModuleError when strict).
        """
        records = store.load()
        resolved: Dict[str, Any] = {}
        missing: List[str] = []

        for name, value in self.outputs.items():
            unresolved = [ref for ref in find_refs(value)
                          if ref.address not in records or not records[ref.address].has_output(ref.output)]
            if unresolved:
                missing.append(name)
                continue
            resolved[name] = resolve_refs(value, lambda ref: records[ref.address].output(ref.output))

        if missing:
            if strict:
                raise ModuleError(f"Outputs of module '{self.module.name}' not yet available: {', '.join(missing)}")
            logger.warning(f"Outputs not yet available for module {self.module.name}: {', '.join(missing)}")
        return resolved


class Module:
    """Named, reusable bundle of resources with declared inputs and outputs."""

    def __init__(
        self,
        name: str,
        inputs: List[InputSpec],
        build: Callable[[ResourceSet, Dict[str, Any]], Dict[str, Any]],
        description: str = "",
        checks: Optional[Callable[[Dict[str, Any]], List[str]]] = None,
    ):
        self.name = name
        self.inputs = inputs
        self.build = build
        self.description = description
        self.checks = checks

    def validate(self, values: Dict[str, Any]) -> Dict[str, Any]:
        return validate_inputs(self.inputs, values, module=self.name, checks=self.checks)

    def instantiate(self, values: Dict[str, Any], resources: ResourceSet) -> ModuleInstance:
        """Validate inputs, then define this module's resources into the set."""
        validated = self.validate(values)
        outputs = self.build(resources, validated) or {}
        logger.info(f"Instantiated module {self.name} with {len(resources)} resources")
        return ModuleInstance(self, validated, resources, outputs)

    def __repr__(self) -> str:
        return f"Module({self.name})"

