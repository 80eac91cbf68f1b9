"""Human-friendly output formatter - converts plans and apply results to readable text."""

import os
from typing import Any, Dict, List, Optional
from ..executor.models import ApplyResult, OutcomeStatus
from ..planner.models import Action, Change, Plan


def _use_ascii(ascii_mode: Optional[bool] = None) -> bool:
    """Resolve whether to use ASCII output (checked at format time)."""
    if ascii_mode is not None:
        return bool(ascii_mode)
    return os.environ.get("TOPOPLAN_ASCII", "").lower() in ("1", "true", "yes")


def _box(title: str, width: int = 65, ascii_mode: bool = False) -> List[str]:
    """Return box-drawing header lines."""
    b = {"tl": "+", "tr": "+", "h": "-", "v": "|"} if ascii_mode else {"tl": "┌", "tr": "┐", "h": "─", "v": "│"}
    h = b["h"] * (width - 2)
    return [
        b["tl"] + h + b["tr"],
        f"{b['v']} {title:<{width - 4}} {b['v']}",
        ("+" if ascii_mode else "└") + h + ("+" if ascii_mode else "┘"),
        "",
    ]


def _section(title: str, width: int = 65) -> List[str]:
    """Return section divider."""
    h = "-" * width
    return [h, title.center(width), h]


def _symbol(change: Change) -> str:
    if change.replacement:
        return "-/+"
    return {
        Action.CREATE: "+",
        Action.UPDATE: "~",
        Action.DELETE: "-",
        Action.NO_OP: " ",
    }[change.action]


def _format_value(value: Any) -> str:
    if isinstance(value, str):
        return f'"{value}"'
    return repr(value)


def _change_lines(change: Change, ascii_mode: bool = False) -> List[str]:
    branch = "|-" if ascii_mode else "├─"
    symbol = _symbol(change)
    verb = "replace" if change.replacement else change.action.value
    if change.replacement and change.action == Action.DELETE:
        verb = "replace (delete)"
    elif change.replacement:
        verb = "replace (create)"

    lines = [f"  {symbol:<3} {change.address}  [{verb}]"]
    lines.append(f"        {branch} {change.reason}")
    if change.action in (Action.UPDATE, Action.CREATE) and change.prior is not None:
        for name in change.changed_attributes:
            before = change.prior.attributes.get(name)
            after = change.attributes.get(name)
            lines.append(f"        {branch} {name}: {_format_value(before)} -> {_format_value(after)}")
    return lines


def format_plan(plan: Plan, ascii_mode: Optional[bool] = None, show_unchanged: bool = False) -> str:
    """
    Format a plan as a change list followed by a summary.

    Args:
        plan: Plan to render
        ascii_mode: Force ASCII box drawing (defaults to TOPOPLAN_ASCII env var)
        show_unchanged: Also list no-op changes

    Returns:
        Multi-line text
    """
    ascii_mode = _use_ascii(ascii_mode)
    title = "TopoPlan Destroy Plan" if plan.destroy else "TopoPlan Execution Plan"
    lines = _box(title, ascii_mode=ascii_mode)

    if not plan.has_changes:
        lines.append("No changes. Infrastructure matches the configuration.")
        return "\n".join(lines)

    lines.extend(_section("CHANGES"))
    for change in plan.changes:
        if change.is_noop and not show_unchanged:
            continue
        lines.extend(_change_lines(change, ascii_mode))
    lines.append("")

    summary = plan.summary()
    lines.extend(_section("SUMMARY"))
    lines.append(
        f"Plan: {summary['create']} to add, {summary['update']} to change, "
        f"{summary['delete']} to destroy, {summary['replace']} to replace."
    )
    if summary["no-op"]:
        lines.append(f"Unchanged: {summary['no-op']}")
    return "\n".join(lines)


_STATUS_LABELS = [
    (OutcomeStatus.CREATED, "Created"),
    (OutcomeStatus.UPDATED, "Updated"),
    (OutcomeStatus.DELETED, "Deleted"),
    (OutcomeStatus.FAILED, "Failed"),
    (OutcomeStatus.BLOCKED, "Blocked"),
    (OutcomeStatus.CANCELED, "Canceled"),
]


def format_apply_result(result: ApplyResult, ascii_mode: Optional[bool] = None) -> str:
    """Format an apply result: addresses grouped by outcome, then outputs."""
    ascii_mode = _use_ascii(ascii_mode)
    bullet = "*" if ascii_mode else "•"
    status_line = "Apply complete" if result.success else "Apply incomplete"
    if result.canceled:
        status_line += " (canceled)"
    lines = _box(f"TopoPlan {status_line}", ascii_mode=ascii_mode)

    failures = {o.address: o.error for o in result.outcomes if o.status == OutcomeStatus.FAILED}
    blocked_by = {o.address: o.blocked_by for o in result.outcomes if o.status == OutcomeStatus.BLOCKED}

    grouped = result.by_status()
    for status, label in _STATUS_LABELS:
        addresses = grouped[status.value]
        if not addresses:
            continue
        lines.append(f"{label} ({len(addresses)}):")
        for address in addresses:
            if status == OutcomeStatus.FAILED:
                lines.append(f"  {bullet} {address}: {failures.get(address)}")
            elif status == OutcomeStatus.BLOCKED:
                lines.append(f"  {bullet} {address} (blocked by {blocked_by.get(address)})")
            else:
                lines.append(f"  {bullet} {address}")
        lines.append("")

    unchanged = len(grouped[OutcomeStatus.UNCHANGED.value])
    if unchanged:
        lines.append(f"Unchanged: {unchanged}")
        lines.append("")

    if result.outputs:
        lines.extend(_section("OUTPUTS"))
        lines.extend(format_outputs_lines(result.outputs))
    return "\n".join(lines).rstrip() + "\n"


def format_outputs_lines(outputs: Dict[str, Any]) -> List[str]:
    lines = []
    for name in sorted(outputs):
        value = outputs[name]
        if isinstance(value, list):
            lines.append(f"{name} = [")
            for item in value:
                lines.append(f"  {_format_value(item)},")
            lines.append("]")
        else:
            lines.append(f"{name} = {_format_value(value)}")
    return lines
