"""Trigger pattern language for prevention rules.

A pattern is a conjunction of ``field op value`` clauses joined by ``AND``::

    payer=Payor A AND cptCode=9083* AND amount>=2500

Fields: payer, cptCode, amount, priorAuthRequired, networkStatus, policyStatus.
Operators: ``=`` and ``!=`` for every field, plus ``>``, ``>=``, ``<``, ``<=``
for amount. An empty pattern or ``*`` always matches.
"""
import fnmatch
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from claimshield.models.exceptions import RulePatternError

_CLAUSE_SPLIT = re.compile(r"\s+AND\s+")
_CLAUSE_RE = re.compile(r"^\s*([A-Za-z]+)\s*(>=|<=|!=|=|>|<)\s*(.+?)\s*$")

FIELDS = ("payer", "cptCode", "amount", "priorAuthRequired", "networkStatus", "policyStatus")
_NUMERIC_OPS = (">", ">=", "<", "<=")


@dataclass(frozen=True)
class Clause:
    """One parsed ``field op value`` condition."""
    field: str
    op: str
    value: str


def parse_pattern(pattern: Optional[str]) -> List[Clause]:
    """
    Parse a trigger pattern into clauses.

    Raises:
        RulePatternError: On an unknown field, bad operator or malformed clause
    """
    text = (pattern or "").strip()
    if not text or text == "*":
        return []

    clauses = []
    for raw in _CLAUSE_SPLIT.split(text):
        match = _CLAUSE_RE.match(raw)
        if not match:
            raise RulePatternError(f"Malformed clause in trigger pattern: {raw!r}")
        field_name, op, value = match.groups()
        if field_name not in FIELDS:
            raise RulePatternError(f"Unknown field in trigger pattern: {field_name}")
        value = value.strip().strip("'\"")
        if op in _NUMERIC_OPS and field_name != "amount":
            raise RulePatternError(f"Operator {op} is only valid for amount, not {field_name}")
        if field_name == "amount":
            try:
                float(value)
            except ValueError:
                raise RulePatternError(f"Amount clause needs a number, got {value!r}")
        if field_name == "priorAuthRequired" and value.lower() not in ("true", "false"):
            raise RulePatternError(f"priorAuthRequired must be true or false, got {value!r}")
        clauses.append(Clause(field=field_name, op=op, value=value))
    return clauses


def _clause_holds(clause: Clause, context: Dict[str, Any]) -> bool:
    actual = context.get(clause.field)
    if actual is None or actual == []:
        return False

    if clause.field == "cptCode":
        hit = any(fnmatch.fnmatchcase(str(code), clause.value) for code in actual)
        return hit if clause.op == "=" else not hit

    if clause.field == "amount":
        target = float(clause.value)
        amount = float(actual)
        return {
            "=": amount == target,
            "!=": amount != target,
            ">": amount > target,
            ">=": amount >= target,
            "<": amount < target,
            "<=": amount <= target,
        }[clause.op]

    if clause.field == "priorAuthRequired":
        equal = bool(actual) == (clause.value.lower() == "true")
    else:
        equal = str(actual).strip().lower() == clause.value.lower()
    return equal if clause.op == "=" else not equal


def pattern_matches(clauses: List[Clause], context: Dict[str, Any]) -> bool:
    """
    Evaluate parsed clauses against a claim context.

    Context keys mirror the pattern fields; ``cptCode`` is a list of codes.
    A clause over an unknown (None) value never holds.
    """
    return all(_clause_holds(clause, context) for clause in clauses)
