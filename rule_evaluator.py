#!/usr/bin/env python3
"""
Rule Evaluator - Generic rule engine for declarative form validation.

This module walks an ordered rule set, resolves each entry's field, applies the
rule's predicate and collects failures in rule-declaration order.

Key Features:
- Ordered evaluation: failure messages follow the rule set order
- The first failing field becomes the focus target
- Never stops early: every entry is evaluated on every pass
- Missing, disabled or ineligible fields skip the entry instead of failing
- Predicate errors (malformed date pattern, bad parameter) fail only their entry
- Error reporter notified once at the end of a failed pass
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Tuple

from date_pattern import validate_date
from error_reporter import ErrorReporter
from field_resolver import FieldHandle, field_value, is_applicable, resolve_field
from predicates import (
    PredicateError,
    is_byte,
    is_float,
    is_in_float_range,
    is_in_int_range,
    is_integer,
    is_present,
    is_short,
    is_within_max_length,
    luhn_check,
    matches_mask,
    meets_min_length,
)

logger = logging.getLogger(__name__)

ParamLookup = Callable[[str], Optional[str]]


def _no_params(key: str) -> Optional[str]:
    return None


def params_from_mapping(mapping: Optional[Mapping[str, Any]]) -> ParamLookup:
    """
    Build a parameter lookup over a mapping of rule variables.

    Values are returned as strings; missing keys and None values yield None.

    Example:
        >>> lookup = params_from_mapping({"min": 1, "max": "10"})
        >>> lookup("min"), lookup("max"), lookup("mask")
        ('1', '10', None)
    """
    values = dict(mapping or {})

    def lookup(key: str) -> Optional[str]:
        value = values.get(key)
        return None if value is None else str(value)

    return lookup


@dataclass(frozen=True)
class RuleEntry:
    """
    One declarative binding of a rule to a field.

    Attributes:
        rule: Rule kind name (e.g. "required", "intRange", "date")
        field_name: Name of the field the rule applies to
        error_message: Message reported when the rule fails
        param_lookup: Lazily queried rule parameters (key -> value or None)
    """
    rule: str
    field_name: str
    error_message: str
    param_lookup: ParamLookup = _no_params


@dataclass(frozen=True)
class RuleSet:
    """Ordered, immutable sequence of rule entries built for one form."""
    form_name: str
    entries: Tuple[RuleEntry, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'entries', tuple(self.entries))

    def __iter__(self) -> Iterator[RuleEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


@dataclass
class FieldFailure:
    """
    A single failed rule entry.

    Attributes:
        field_name: Name of the field that failed
        rule_violated: Rule kind that failed
        message: User-facing error message from the rule entry
        found: Field value that was checked
        field: The field handle (focus target candidate)
        detail: Extra diagnostic detail (e.g. a malformed pattern), empty if none
    """
    field_name: str
    rule_violated: str
    message: str
    found: str
    field: Optional[FieldHandle] = None
    detail: str = ""

    def format_error(self) -> str:
        """
        Format the failure for console output.

        Example:
            [ERROR] birthDate: date
              Message: Birth date is not a date.
              Found: "02/30/2020"
        """
        parts = [f"[ERROR] {self.field_name}: {self.rule_violated}"]
        parts.append(f"  Message: {self.message}")
        if self.detail:
            parts.append(f"  Detail: {self.detail}")
        parts.append(f"  Found: \"{self.found}\"")
        return "\n".join(parts)


@dataclass
class ValidationResult:
    """Outcome of a validation pass; valid exactly when there are no failures."""
    failures: List[FieldFailure] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return len(self.failures) == 0

    @property
    def messages(self) -> List[str]:
        return [failure.message for failure in self.failures]

    @property
    def focus_target(self) -> Optional[FieldHandle]:
        return self.failures[0].field if self.failures else None


@dataclass(frozen=True)
class RuleDefinition:
    """
    How a rule kind checks a value.

    Attributes:
        name: Rule kind name
        check: Predicate over (value, param_lookup)
        skips_empty: Whether empty values pass without running the check
    """
    name: str
    check: Callable[[str, ParamLookup], bool]
    skips_empty: bool = True


# Rule checks: adapt (value, param_lookup) to the predicate library

def _check_required(value: str, params: ParamLookup) -> bool:
    return is_present(value)


def _check_minlength(value: str, params: ParamLookup) -> bool:
    return meets_min_length(value, params("minlength"), params("lineEndLength"))


def _check_maxlength(value: str, params: ParamLookup) -> bool:
    return is_within_max_length(value, params("maxlength"), params("lineEndLength"))


def _check_mask(value: str, params: ParamLookup) -> bool:
    return matches_mask(value, params("mask"))


def _check_int_range(value: str, params: ParamLookup) -> bool:
    return is_in_int_range(value, params("min"), params("max"))


def _check_float_range(value: str, params: ParamLookup) -> bool:
    return is_in_float_range(value, params("min"), params("max"))


RULES: Dict[str, RuleDefinition] = {
    'required': RuleDefinition('required', _check_required, skips_empty=False),
    'minlength': RuleDefinition('minlength', _check_minlength),
    'maxlength': RuleDefinition('maxlength', _check_maxlength),
    'mask': RuleDefinition('mask', _check_mask),
    'byte': RuleDefinition('byte', lambda value, params: is_byte(value)),
    'short': RuleDefinition('short', lambda value, params: is_short(value)),
    'integer': RuleDefinition('integer', lambda value, params: is_integer(value)),
    'float': RuleDefinition('float', lambda value, params: is_float(value)),
    'intRange': RuleDefinition('intRange', _check_int_range),
    'floatRange': RuleDefinition('floatRange', _check_float_range),
    'date': RuleDefinition('date', validate_date),
    'creditCard': RuleDefinition('creditCard', lambda value, params: luhn_check(value)),
}


class RuleEvaluator:
    """
    Generic rule evaluation engine for form validation.

    Evaluates a form against an ordered rule set. The evaluator holds no state
    between passes; each call to evaluate() builds a fresh result.
    """

    def __init__(self, reporter: Optional[ErrorReporter] = None):
        """
        Initialize rule evaluator.

        Args:
            reporter: Optional collaborator notified when a pass has failures
        """
        self.reporter = reporter

    def evaluate(self, form: Any, rule_set: RuleSet) -> ValidationResult:
        """
        Evaluate every entry of a rule set against a form.

        Args:
            form: Form snapshot or any object with a ``get(name)`` method
            rule_set: Ordered rule entries to evaluate

        Returns:
            ValidationResult with failures in rule set order
        """
        failures: List[FieldFailure] = []
        focus_target: Optional[FieldHandle] = None

        for entry in rule_set:
            failure = self._evaluate_entry(form, entry)
            if failure is None:
                continue
            if not failures:
                focus_target = failure.field
            failures.append(failure)

        result = ValidationResult(failures=failures)

        if failures and self.reporter is not None:
            self.reporter.report(result.messages, focus_target)

        return result

    def _evaluate_entry(self, form: Any, entry: RuleEntry) -> Optional[FieldFailure]:
        """
        Evaluate a single rule entry.

        Returns:
            FieldFailure if the entry failed, None if it passed or was skipped
        """
        definition = RULES.get(entry.rule)
        if definition is None:
            logger.warning(
                "Unknown rule '%s' for field '%s', skipping", entry.rule, entry.field_name
            )
            return None

        handle = resolve_field(form, entry.field_name)
        if handle is None:
            return None

        if not is_applicable(handle, entry.rule):
            logger.debug(
                "Rule '%s' does not apply to field '%s' (kind=%s, disabled=%s)",
                entry.rule, entry.field_name, handle.kind.value, handle.disabled,
            )
            return None

        value = field_value(handle)
        if definition.skips_empty and value == "":
            return None

        detail = ""
        try:
            passed = definition.check(value, entry.param_lookup)
        except PredicateError as e:
            logger.warning(
                "Rule '%s' on field '%s' could not be evaluated: %s",
                entry.rule, entry.field_name, e,
            )
            passed = False
            detail = str(e)

        if passed:
            return None

        return FieldFailure(
            field_name=entry.field_name,
            rule_violated=entry.rule,
            message=entry.error_message,
            found=value,
            field=handle,
            detail=detail,
        )


def validate_form(form: Any, rule_set: RuleSet, reporter: Optional[ErrorReporter] = None) -> ValidationResult:
    """
    Convenience function to validate a form against a rule set.

    Args:
        form: Form snapshot or any object with a ``get(name)`` method
        rule_set: Ordered rule entries
        reporter: Optional collaborator notified when the pass has failures

    Returns:
        ValidationResult (valid when there are no failures)
    """
    evaluator = RuleEvaluator(reporter=reporter)
    return evaluator.evaluate(form, rule_set)
