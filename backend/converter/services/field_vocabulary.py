"""
Header and cell-value vocabulary for canonical fields.

The alias table drives the exact (static) mapping phase and header-row
detection; keyword lists and value vocabularies drive dynamic inference.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Dict, FrozenSet, Optional, Tuple

from shared.models.conversion import CanonicalField

F = CanonicalField

HEADER_ALIASES: Dict[str, CanonicalField] = {
    # id
    "id": F.ID,
    "tc id": F.ID,
    "test id": F.ID,
    "case id": F.ID,
    "ref": F.ID,
    "reference": F.ID,
    "ticket": F.ID,
    # feature
    "feature": F.FEATURE,
    "req": F.FEATURE,
    "requirement": F.FEATURE,
    "story": F.FEATURE,
    "user story": F.FEATURE,
    "task": F.FEATURE,
    "title": F.FEATURE,
    "name": F.FEATURE,
    "module": F.FEATURE,
    # scenario
    "scenario": F.SCENARIO,
    "test case": F.SCENARIO,
    "tc": F.SCENARIO,
    "test name": F.SCENARIO,
    "case": F.SCENARIO,
    "case name": F.SCENARIO,
    # instructions
    "instructions": F.INSTRUCTIONS,
    "description": F.INSTRUCTIONS,
    "steps": F.INSTRUCTIONS,
    "test steps": F.INSTRUCTIONS,
    "procedure": F.INSTRUCTIONS,
    # inputs
    "inputs": F.INPUTS,
    "input": F.INPUTS,
    "test data": F.INPUTS,
    "testdata": F.INPUTS,
    "data": F.INPUTS,
    "parameters": F.INPUTS,
    "params": F.INPUTS,
    # expected
    "expected": F.EXPECTED,
    "expected output": F.EXPECTED,
    "expected result": F.EXPECTED,
    "expected results": F.EXPECTED,
    "acceptance": F.EXPECTED,
    "acceptance criteria": F.EXPECTED,
    "result": F.EXPECTED,
    "outcome": F.EXPECTED,
    "success signal": F.EXPECTED,
    # precondition
    "precondition": F.PRECONDITION,
    "preconditions": F.PRECONDITION,
    "pre-condition": F.PRECONDITION,
    "pre": F.PRECONDITION,
    "given": F.PRECONDITION,
    "prerequisites": F.PRECONDITION,
    "setup": F.PRECONDITION,
    # priority
    "priority": F.PRIORITY,
    "prio": F.PRIORITY,
    "severity": F.PRIORITY,
    "sev": F.PRIORITY,
    # type
    "type": F.TYPE,
    "category": F.TYPE,
    "test type": F.TYPE,
    "kind": F.TYPE,
    # status
    "status": F.STATUS,
    "state": F.STATUS,
    # endpoint
    "endpoint": F.ENDPOINT,
    "api": F.ENDPOINT,
    "api/endpoint": F.ENDPOINT,
    "url": F.ENDPOINT,
    "route": F.ENDPOINT,
    "path": F.ENDPOINT,
    # notes
    "notes": F.NOTES,
    "note": F.NOTES,
    "comments": F.NOTES,
    "comment": F.NOTES,
    "remarks": F.NOTES,
    "remark": F.NOTES,
    # UI spec-table
    "no": F.NO,
    "no.": F.NO,
    "#": F.NO,
    "item name": F.ITEM_NAME,
    "item": F.ITEM_NAME,
    "field name": F.ITEM_NAME,
    "item type": F.ITEM_TYPE,
    "field type": F.ITEM_TYPE,
    "required/optional": F.REQUIRED_OPTIONAL,
    "required / optional": F.REQUIRED_OPTIONAL,
    "required": F.REQUIRED_OPTIONAL,
    "mandatory": F.REQUIRED_OPTIONAL,
    "input restrictions": F.INPUT_RESTRICTIONS,
    "input restriction": F.INPUT_RESTRICTIONS,
    "validation": F.INPUT_RESTRICTIONS,
    "display conditions": F.DISPLAY_CONDITIONS,
    "display condition": F.DISPLAY_CONDITIONS,
    "action": F.ACTION,
    "actions": F.ACTION,
    "navigation destination": F.NAVIGATION_DESTINATION,
    "navigation": F.NAVIGATION_DESTINATION,
    "destination": F.NAVIGATION_DESTINATION,
}

FIELD_KEYWORDS: Dict[CanonicalField, Tuple[str, ...]] = {
    F.ID: ("id", "case id", "ticket", "ref", "reference"),
    F.FEATURE: ("feature", "module", "story", "requirement"),
    F.SCENARIO: ("scenario", "case", "flow", "usecase", "test"),
    F.INSTRUCTIONS: ("step", "instruction", "procedure", "how to", "action detail"),
    F.INPUTS: ("input", "data", "parameter", "param", "payload"),
    F.EXPECTED: ("expected", "result", "outcome", "success", "acceptance", "criteria"),
    F.PRECONDITION: ("precondition", "pre-condition", "prerequisite", "setup", "given"),
    F.PRIORITY: ("priority", "severity", "impact", "urgency"),
    F.TYPE: ("type", "kind", "class"),
    F.STATUS: ("status", "state", "progress"),
    F.ENDPOINT: ("endpoint", "api", "url", "route", "path", "uri"),
    F.NOTES: ("note", "remark", "comment", "memo"),
    F.NO: ("no", "number", "seq", "index"),
    F.ITEM_NAME: ("item", "field", "label", "name"),
    F.ITEM_TYPE: ("item type", "field type", "control", "widget"),
    F.REQUIRED_OPTIONAL: ("required", "optional", "mandatory"),
    F.INPUT_RESTRICTIONS: ("restriction", "constraint", "validation", "rule"),
    F.DISPLAY_CONDITIONS: ("display", "visibility", "condition", "show when"),
    F.ACTION: ("action", "trigger", "event", "on click"),
    F.NAVIGATION_DESTINATION: ("navigation", "destination", "target", "redirect", "next screen"),
}

STATUS_VALUES: FrozenSet[str] = frozenset(
    {"new", "open", "wip", "in progress", "done", "closed", "passed", "failed", "draft", "active"}
)
PRIORITY_VALUES: FrozenSet[str] = frozenset(
    {"p0", "p1", "p2", "p3", "high", "medium", "low", "critical", "blocker", "minor"}
)
REQUIRED_VALUES: FrozenSet[str] = frozenset({"required", "optional", "must", "yes", "no", "mandatory"})
ACTION_TOKENS: Tuple[str, ...] = ("click", "tap", "select", "enter", "submit", "open", "navigate", "press")
NOTE_TOKENS: Tuple[str, ...] = ("note", "remark", "comment")

_KEYWORD_PATTERNS: Dict[str, "re.Pattern[str]"] = {}


def normalize_header(header: str) -> str:
    """NFKC, lower-case, separators to spaces, whitespace collapsed."""
    text = unicodedata.normalize("NFKC", header or "").lower()
    text = re.sub(r"[_\s]+", " ", text).strip()
    return text


def lookup_alias(header: str) -> Optional[CanonicalField]:
    normalized = normalize_header(header)
    if normalized in HEADER_ALIASES:
        return HEADER_ALIASES[normalized]
    # "test-case" / "item-name" style headers
    return HEADER_ALIASES.get(normalized.replace("-", " "))


def has_header_keyword(normalized_header: str, field: CanonicalField) -> bool:
    """Whole-word keyword hit, tolerating a plural suffix ("steps" matches "step")."""
    for keyword in FIELD_KEYWORDS.get(field, ()):
        pattern = _KEYWORD_PATTERNS.get(keyword)
        if pattern is None:
            pattern = re.compile(r"(?<![a-z0-9])" + re.escape(keyword) + r"(?:s|es)?(?![a-z0-9])")
            _KEYWORD_PATTERNS[keyword] = pattern
        if pattern.search(normalized_header):
            return True
    return False


def is_status_like(value: str) -> bool:
    return value in STATUS_VALUES


def is_priority_like(value: str) -> bool:
    return value in PRIORITY_VALUES


def is_required_like(value: str) -> bool:
    return value in REQUIRED_VALUES


def is_action_like(value: str) -> bool:
    return any(token in value for token in ACTION_TOKENS)


def is_url_like(value: str) -> bool:
    return value.startswith(("http://", "https://", "/"))


def is_numeric_like(value: str) -> bool:
    return value.isascii() and value.isdigit()
