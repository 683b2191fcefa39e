#!/usr/bin/env python3
"""
Date Pattern Interpreter

This module turns a literal date pattern such as "MM/dd/yyyy" or "yyyyMMdd"
into a matcher at runtime, extracts day, month and year from a field value and
checks that the result is a real calendar date.

Key Features:
- Token ordering detected from the positions of MM, dd and yyyy
- Optional single-character delimiter after each of the first two tokens
- Strict (fixed two-digit day/month) and loose (one or two digits) matching
- Gregorian leap-year handling for February

Supported orderings: month-day-year, day-month-year, year-month-day. Any other
ordering is a malformed pattern and always fails validation.
"""

import re
from dataclasses import dataclass
from typing import Callable, Optional, Pattern, Tuple

from predicates import PredicateError

MONTH = "MM"
DAY = "dd"
YEAR = "yyyy"

TOKEN_TEXT = {'month': MONTH, 'day': DAY, 'year': YEAR}

SUPPORTED_ORDERS = (
    ('month', 'day', 'year'),
    ('day', 'month', 'year'),
    ('year', 'month', 'day'),
)

THIRTY_DAY_MONTHS = {4, 6, 9, 11}


class DatePatternError(PredicateError):
    """Exception raised when a date pattern cannot be interpreted."""
    pass


@dataclass(frozen=True)
class DatePatternSpec:
    """
    Interpretation of a literal date pattern.

    Attributes:
        pattern: The literal pattern string
        order: Token names in the order they appear (e.g. ('year', 'month', 'day'))
        delimiters: Delimiter after the first and second token, None where absent
        strict: Whether day and month need exactly two digits
        regex: Compiled matcher with one capture group per token, in order
    """
    pattern: str
    order: Tuple[str, str, str]
    delimiters: Tuple[Optional[str], Optional[str]]
    strict: bool
    regex: Pattern

    def describe(self) -> str:
        """Short human-readable summary, e.g. 'month/day/year (strict)'."""
        first, second = (d if d is not None else "" for d in self.delimiters)
        mode = "strict" if self.strict else "loose"
        return f"{self.order[0]}{first}{self.order[1]}{second}{self.order[2]} ({mode})"


def _digit_group(token: str, strict: bool) -> str:
    if token == 'year':
        return r'([0-9]{4})'
    if strict:
        return r'([0-9]{2})'
    return r'([0-9]{1,2})'


def interpret_date_pattern(pattern: str, strict: bool = True) -> DatePatternSpec:
    """
    Work out token order and delimiters of a date pattern and build its matcher.

    Args:
        pattern: Literal pattern containing MM, dd and yyyy once each
        strict: True for fixed-width day/month, False for one-or-two digits

    Returns:
        DatePatternSpec describing the pattern

    Raises:
        DatePatternError: If a token is missing or the ordering is unsupported

    Example:
        >>> spec = interpret_date_pattern("MM/dd/yyyy")
        >>> spec.order, spec.delimiters
        (('month', 'day', 'year'), ('/', '/'))
        >>> interpret_date_pattern("yyyyMMdd").delimiters
        (None, None)
    """
    starts = {token: pattern.find(text) for token, text in TOKEN_TEXT.items()}

    missing = [TOKEN_TEXT[token] for token, start in starts.items() if start < 0]
    if missing:
        raise DatePatternError(
            f"Date pattern {pattern!r} is missing token(s): {', '.join(missing)}"
        )

    order = tuple(sorted(starts, key=starts.get))
    if order not in SUPPORTED_ORDERS:
        raise DatePatternError(
            f"Date pattern {pattern!r} has unsupported token order: "
            f"{'-'.join(order)}"
        )

    delimiters = []
    for current, following in zip(order, order[1:]):
        slot = starts[current] + len(TOKEN_TEXT[current])
        if slot == starts[following]:
            delimiters.append(None)
        else:
            delimiters.append(pattern[slot])

    parts = [_digit_group(order[0], strict)]
    for delimiter, token in zip(delimiters, order[1:]):
        if delimiter is not None:
            parts.append(re.escape(delimiter))
        parts.append(_digit_group(token, strict))

    return DatePatternSpec(
        pattern=pattern,
        order=order,
        delimiters=(delimiters[0], delimiters[1]),
        strict=strict,
        regex=re.compile(''.join(parts)),
    )


def parse_date(value: str, spec: DatePatternSpec) -> Optional[Tuple[int, int, int]]:
    """
    Extract day, month and year from a value using an interpreted pattern.

    Returns:
        (day, month, year) tuple, or None if the value does not match
    """
    match = spec.regex.fullmatch(value)
    if match is None:
        return None

    parts = dict(zip(spec.order, (int(group) for group in match.groups())))
    return parts['day'], parts['month'], parts['year']


def is_leap_year(year: int) -> bool:
    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)


def is_valid_date(day: int, month: int, year: int) -> bool:
    """
    Check calendar correctness of a day/month/year triple.

    Example:
        >>> is_valid_date(29, 2, 2024)
        True
        >>> is_valid_date(29, 2, 2023)
        False
        >>> is_valid_date(31, 4, 2020)
        False
    """
    if month < 1 or month > 12:
        return False
    if day < 1 or day > 31:
        return False
    if month in THIRTY_DAY_MONTHS and day == 31:
        return False
    if month == 2:
        if day > 29 or (day == 29 and not is_leap_year(year)):
            return False
    return True


def select_date_pattern(param_lookup: Callable[[str], Optional[str]]) -> Optional[Tuple[str, bool]]:
    """
    Pick the pattern a date rule should use.

    The strict pattern ("datePatternStrict") wins; otherwise the loose pattern
    ("datePattern") is used with strict matching turned off.

    Returns:
        (pattern, strict) tuple, or None if neither parameter is present
    """
    strict_pattern = param_lookup("datePatternStrict")
    if strict_pattern is not None:
        return str(strict_pattern), True

    loose_pattern = param_lookup("datePattern")
    if loose_pattern is not None:
        return str(loose_pattern), False

    return None


def validate_date(value: str, param_lookup: Callable[[str], Optional[str]]) -> bool:
    """
    Validate a field value against the date pattern of a rule.

    Args:
        value: Raw field value
        param_lookup: Rule parameter lookup

    Returns:
        True if no (or an empty) pattern is configured, or the value matches
        the pattern and is a real date; False otherwise

    Raises:
        DatePatternError: If the configured pattern is malformed
    """
    selected = select_date_pattern(param_lookup)
    if selected is None:
        return True

    pattern, strict = selected
    if not pattern:
        return True

    spec = interpret_date_pattern(pattern, strict)
    parts = parse_date(value, spec)
    if parts is None:
        return False

    return is_valid_date(*parts)
