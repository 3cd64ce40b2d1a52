"""Pallet completion rules.

A rule is a small tree, stored as JSON on the pallet::

    {"type": "bottles_gte", "value": 600}
    {"type": "profit_gte", "value": 15000}
    {"type": "condition", "metric": "bottles", "op": ">", "value": 500}
    {"type": "and", "rules": [...]}
    {"type": "or", "rules": [...]}

``evaluate`` returns ``None`` when there is nothing to evaluate (no rule,
or a composite without children); ``is_complete`` then falls back to
``bottles >= capacity``.  Everything here is pure.

The older group format is still accepted by ``parse_rules``::

    {"mode": "SEQUENTIAL" | "COMBINE", "operator": "AND" | "OR",
     "groups": [{"operator": "AND" | "OR", "conditions": [
         {"metric": "bottles", "op": ">=", "value": 720}]}]}

SEQUENTIAL groups read as IF / ELSE IF, so the first satisfied group
completes the pallet; COMBINE joins the group results with ``operator``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from modules.pallets.exceptions import InvalidCompletionRules

Metric = Literal["bottles", "profit_sek"]
Comparator = Literal[">=", ">", "<=", "<"]

METRIC_LABELS = {"bottles": "Bottles", "profit_sek": "Profit (SEK)"}


@dataclass(frozen=True)
class PalletMetrics:
    bottles: int
    profit_sek: Decimal

    def value_of(self, metric: str) -> Decimal:
        return Decimal(self.bottles) if metric == "bottles" else self.profit_sek


# ---------------------------------------------------------------------------
# Rule tree
# ---------------------------------------------------------------------------


class _RuleNode(BaseModel):
    model_config = ConfigDict(frozen=True)


class BottlesAtLeast(_RuleNode):
    type: Literal["bottles_gte"] = "bottles_gte"
    value: Decimal = Field(ge=0)


class ProfitAtLeast(_RuleNode):
    type: Literal["profit_gte"] = "profit_gte"
    value: Decimal


class Condition(_RuleNode):
    type: Literal["condition"] = "condition"
    metric: Metric
    op: Comparator
    value: Decimal


class AllOf(_RuleNode):
    type: Literal["and"] = "and"
    rules: List["Rule"] = []


class AnyOf(_RuleNode):
    type: Literal["or"] = "or"
    rules: List["Rule"] = []


Rule = Annotated[
    Union[BottlesAtLeast, ProfitAtLeast, Condition, AllOf, AnyOf],
    Field(discriminator="type"),
]

AllOf.model_rebuild()
AnyOf.model_rebuild()

_rule_adapter: TypeAdapter = TypeAdapter(Rule)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


class _LegacyCondition(BaseModel):
    metric: Metric
    op: Comparator
    value: Decimal = Decimal("0")


class _LegacyGroup(BaseModel):
    operator: Literal["AND", "OR"] = "AND"
    conditions: List[_LegacyCondition] = []


class _LegacyRules(BaseModel):
    mode: Literal["SEQUENTIAL", "COMBINE"] = "SEQUENTIAL"
    operator: Literal["AND", "OR"] = "OR"
    groups: List[_LegacyGroup] = []


# bottles can never be negative, so this condition never holds
_NEVER = Condition(metric="bottles", op="<", value=Decimal("0"))


def _from_legacy(legacy: _LegacyRules) -> Optional[Rule]:
    if not legacy.groups:
        return None

    groups: List[Rule] = []
    for group in legacy.groups:
        conditions = [
            Condition(metric=c.metric, op=c.op, value=c.value) for c in group.conditions
        ]
        if not conditions:
            groups.append(_NEVER)
        elif group.operator == "AND":
            groups.append(AllOf(rules=conditions))
        else:
            groups.append(AnyOf(rules=conditions))

    if legacy.mode == "COMBINE" and legacy.operator == "AND":
        return AllOf(rules=groups)
    return AnyOf(rules=groups)


def parse_rules(data: Any) -> Optional[Rule]:
    """Build a rule tree from stored JSON.

    ``None`` and ``{}`` mean "no rule".  Raises ``InvalidCompletionRules``
    for anything that is neither the tree nor the group format.
    """
    if data is None or data == {}:
        return None
    if isinstance(data, _RuleNode):
        return data
    if not isinstance(data, dict):
        raise InvalidCompletionRules(f"Completion rules must be an object, got {type(data).__name__}.")

    try:
        if "type" in data:
            return _rule_adapter.validate_python(data)
        if "groups" in data:
            return _from_legacy(_LegacyRules.model_validate(data))
    except PydanticValidationError as exc:
        raise InvalidCompletionRules(str(exc)) from exc
    raise InvalidCompletionRules("Completion rules need a 'type' or 'groups' key.")


def dump_rules(rule: Optional[Rule]) -> Optional[dict]:
    return None if rule is None else rule.model_dump(mode="json")


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


def _compare(left: Decimal, op: str, right: Decimal) -> bool:
    if op == ">=":
        return left >= right
    if op == ">":
        return left > right
    if op == "<=":
        return left <= right
    return left < right


def evaluate(rule: Optional[Rule], metrics: PalletMetrics) -> Optional[bool]:
    if rule is None:
        return None
    if isinstance(rule, BottlesAtLeast):
        return Decimal(metrics.bottles) >= rule.value
    if isinstance(rule, ProfitAtLeast):
        return metrics.profit_sek >= rule.value
    if isinstance(rule, Condition):
        return _compare(metrics.value_of(rule.metric), rule.op, rule.value)

    results = [r for r in (evaluate(child, metrics) for child in rule.rules) if r is not None]
    if not results:
        return None
    if isinstance(rule, AllOf):
        return all(results)
    return any(results)


def is_complete(
    rule: Optional[Rule], bottles: int, profit_sek: Decimal, capacity: int
) -> bool:
    result = evaluate(rule, PalletMetrics(bottles=bottles, profit_sek=Decimal(profit_sek)))
    if result is None:
        return bottles >= capacity
    return result


# ---------------------------------------------------------------------------
# Display
# ---------------------------------------------------------------------------


def _fmt_number(value: Decimal) -> str:
    if value == value.to_integral_value():
        return str(int(value))
    return format(value.normalize(), "f")


def _describe_node(rule: Rule) -> str:
    if isinstance(rule, BottlesAtLeast):
        return f"Bottles >= {_fmt_number(rule.value)}"
    if isinstance(rule, ProfitAtLeast):
        return f"Profit (SEK) >= {_fmt_number(rule.value)}"
    if isinstance(rule, Condition):
        return f"{METRIC_LABELS[rule.metric]} {rule.op} {_fmt_number(rule.value)}"
    if not rule.rules:
        return "(none)"
    joiner = " AND " if isinstance(rule, AllOf) else " OR "
    return "(" + joiner.join(_describe_node(child) for child in rule.rules) + ")"


def describe(rule: Optional[Rule], capacity: Optional[int] = None) -> str:
    """One-line summary for admin screens, e.g.
    ``IF (Bottles >= 600 OR Profit (SEK) >= 15000) THEN Complete ELSE Incomplete``.
    """
    if rule is None:
        if capacity is None:
            return "IF Bottles >= capacity THEN Complete ELSE Incomplete"
        return f"IF Bottles >= {capacity} THEN Complete ELSE Incomplete"
    return f"IF {_describe_node(rule)} THEN Complete ELSE Incomplete"
