#!/usr/bin/env python3
"""
Field Resolver - Maps field names to live field handles and their values.

This module models the form fields a rule set is evaluated against and the
static table that decides which rule kinds apply to which field kinds.

Key Features:
- Tagged field kinds (hidden, text, textarea, password, select-one, radio, checkbox, file)
- Kind-specific value extraction (select lists read the selected option)
- Soft resolution: a missing field yields None instead of raising
- Static applicability table with per-rule disabled-flag handling
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional

logger = logging.getLogger(__name__)


class FieldKind(str, Enum):
    """Kinds of form fields a rule can be evaluated against."""
    HIDDEN = "hidden"
    TEXT = "text"
    TEXTAREA = "textarea"
    PASSWORD = "password"
    SELECT_ONE = "select-one"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    FILE = "file"


@dataclass
class FieldHandle:
    """
    A single form field as seen by the rule engine.

    Attributes:
        name: Field name used by rule entries to look the field up
        kind: Field kind, decides value extraction and rule applicability
        value: Raw scalar value (ignored for select-one fields)
        options: Option values of a select-one field
        selected_index: Index of the selected option, -1 when nothing is selected
        disabled: Whether the field is disabled
    """
    name: str
    kind: FieldKind
    value: str = ""
    options: List[str] = field(default_factory=list)
    selected_index: int = -1
    disabled: bool = False

    def __post_init__(self):
        # Hosts may pass the kind as plain text ("select-one")
        self.kind = FieldKind(self.kind)

    @property
    def hidden(self) -> bool:
        return self.kind is FieldKind.HIDDEN

    @property
    def selected_value(self) -> str:
        """Value of the selected option, or empty string if none is selected."""
        if 0 <= self.selected_index < len(self.options):
            return self.options[self.selected_index]
        return ""


class Form:
    """
    Ordered collection of named fields.

    Any object exposing ``get(name)`` can stand in for a Form when resolving
    fields; this class is the snapshot used by the CLI and the tests.
    """

    def __init__(self, name: str = "", fields: Optional[List[FieldHandle]] = None):
        self.name = name
        self._fields: Dict[str, FieldHandle] = {}
        for handle in fields or []:
            self.add(handle)

    def add(self, handle: FieldHandle) -> None:
        self._fields[handle.name] = handle

    def get(self, name: str) -> Optional[FieldHandle]:
        return self._fields.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._fields

    def __iter__(self) -> Iterator[FieldHandle]:
        return iter(self._fields.values())

    def __len__(self) -> int:
        return len(self._fields)


# Rule kind -> (applicable field kinds, honors disabled flag)
_TEXTUAL = {FieldKind.HIDDEN, FieldKind.TEXT, FieldKind.TEXTAREA}

APPLICABILITY: Dict[str, tuple] = {
    'required': (
        {FieldKind.TEXT, FieldKind.TEXTAREA, FieldKind.FILE,
         FieldKind.SELECT_ONE, FieldKind.RADIO, FieldKind.PASSWORD},
        False,
    ),
    'minlength': (_TEXTUAL | {FieldKind.PASSWORD}, True),
    'maxlength': (_TEXTUAL | {FieldKind.PASSWORD}, True),
    'byte': (_TEXTUAL | {FieldKind.SELECT_ONE, FieldKind.RADIO}, True),
    'short': (_TEXTUAL | {FieldKind.SELECT_ONE, FieldKind.RADIO}, True),
    'integer': (_TEXTUAL | {FieldKind.SELECT_ONE, FieldKind.RADIO}, True),
    'float': (_TEXTUAL | {FieldKind.SELECT_ONE, FieldKind.RADIO}, True),
    'intRange': (_TEXTUAL, True),
    'floatRange': (_TEXTUAL, True),
    'mask': (_TEXTUAL | {FieldKind.FILE}, True),
    'date': (_TEXTUAL, True),
    'creditCard': ({FieldKind.TEXT, FieldKind.TEXTAREA}, True),
}


def resolve_field(form: Any, field_name: str) -> Optional[FieldHandle]:
    """
    Look up a field by name.

    Args:
        form: Form snapshot or any object with a ``get(name)`` method
        field_name: Name of the field to resolve

    Returns:
        The field handle, or None if the form has no such field

    Example:
        >>> form = Form(fields=[FieldHandle("age", FieldKind.TEXT, "42")])
        >>> resolve_field(form, "age").value
        '42'
        >>> resolve_field(form, "missing") is None
        True
    """
    handle = form.get(field_name)
    if handle is None:
        logger.debug("Field '%s' not present on form", field_name)
    return handle


def field_value(handle: FieldHandle) -> str:
    """
    Extract the current textual value of a field.

    Select-one fields expose their value only through the selected option;
    every other kind exposes its raw value.
    """
    if handle.kind is FieldKind.SELECT_ONE:
        return handle.selected_value
    return "" if handle.value is None else str(handle.value)


def is_applicable(handle: FieldHandle, rule: str) -> bool:
    """
    Check whether a rule kind considers a field eligible for evaluation.

    Args:
        handle: Resolved field
        rule: Rule kind name (e.g. "required", "date")

    Returns:
        True if the field kind is listed for the rule and, for rules that
        honor it, the field is not disabled. Unknown rule kinds are never
        applicable.
    """
    entry = APPLICABILITY.get(rule)
    if entry is None:
        return False

    kinds, honors_disabled = entry
    if handle.kind not in kinds:
        return False
    if honors_disabled and handle.disabled:
        return False
    return True


def form_from_dict(data: Dict[str, Any], name: str = "") -> Form:
    """
    Build a Form snapshot from plain data.

    Args:
        data: Mapping with a ``fields`` mapping of field name to attributes
              (kind, value, options, selected_index, disabled)
        name: Optional form name

    Returns:
        Form with fields in declaration order

    Raises:
        ValueError: If ``fields`` or a field entry is not a mapping, or a field
            declares an unknown kind

    Example:
        >>> form = form_from_dict({"fields": {"zip": {"kind": "text", "value": "12345"}}})
        >>> form.get("zip").kind
        <FieldKind.TEXT: 'text'>
    """
    form = Form(name=name or data.get("name", ""))

    fields = data.get("fields") or {}
    if not isinstance(fields, dict):
        raise ValueError(
            f"Form 'fields' must be a mapping of field name to attributes, "
            f"got {type(fields).__name__}"
        )

    for field_name, attrs in fields.items():
        attrs = attrs or {}
        if not isinstance(attrs, dict):
            raise ValueError(
                f"Field '{field_name}' must be a mapping of attributes, "
                f"got {type(attrs).__name__}"
            )
        kind_name = attrs.get("kind", "text")
        try:
            kind = FieldKind(kind_name)
        except ValueError:
            raise ValueError(
                f"Field '{field_name}' has unknown kind: {kind_name}. "
                f"Available kinds: {', '.join(k.value for k in FieldKind)}"
            )

        value = attrs.get("value", "")
        form.add(FieldHandle(
            name=field_name,
            kind=kind,
            value="" if value is None else str(value),
            options=[str(option) for option in attrs.get("options", [])],
            selected_index=int(attrs.get("selected_index", -1)),
            disabled=bool(attrs.get("disabled", False)),
        ))

    return form
