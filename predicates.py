#!/usr/bin/env python3
"""
Predicate Library for Form Field Validation Rules

This module provides the pure predicates the rule engine applies to extracted
field values. Every predicate takes the field value plus the rule parameters it
needs and returns a boolean; none of them touch external state.

Supported Predicates:
- is_present(value): Value is non-empty after trimming (required rule)
- is_all_digits(value): Digits in the alphabet selected by the value's prefix
- is_decimal_digits(value): Optional '-' followed by base-10 digits
- is_byte / is_short / is_integer(value): Integer within the type's bounds
- is_float(value): Decimal number with at most one '.'
- is_in_int_range / is_in_float_range(value, min, max): Inclusive range check
- matches_mask(value, mask): Full-string regular expression match
- is_within_max_length / meets_min_length(value, bound, line_end_length)
- luhn_check(value): Credit card checksum
"""

import re
from typing import Optional, Union

DECIMAL_DIGITS = "0123456789"
OCTAL_DIGITS = "01234567"
HEX_DIGITS = "0123456789abcdefABCDEF"

BYTE_BOUNDS = (-128, 127)
SHORT_BOUNDS = (-32768, 32767)
INT_BOUNDS = (-2147483648, 2147483647)

_DECIMAL_RE = re.compile(r'-?[0-9]+')
_FLOAT_RE = re.compile(r'[-+]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][-+]?[0-9]+)?')

Param = Optional[Union[str, int, float]]


class PredicateError(Exception):
    """Base exception for predicate evaluation errors."""
    pass


class InvalidRuleParameterError(PredicateError):
    """Exception raised when a rule parameter cannot be interpreted."""
    pass


# Presence

def is_present(value: str) -> bool:
    """
    Check that a value is non-empty once surrounding whitespace is removed.

    Example:
        >>> is_present("  x ")
        True
        >>> is_present("   ")
        False
    """
    return len(value.strip()) > 0


# Digit predicates

def is_all_digits(value: str) -> bool:
    """
    Check that a value consists of digits in the alphabet its prefix selects.

    A leading ``0x``/``0X`` selects hexadecimal digits from offset 2, a leading
    ``0`` selects octal digits from offset 1, a leading ``-`` is skipped and
    decimal digits follow. Anything else is decimal from offset 0. An empty
    remainder after the prefix counts as all digits.

    Args:
        value: Raw field value

    Returns:
        True if every character after the prefix is in the selected alphabet

    Example:
        >>> is_all_digits("0x1A")
        True
        >>> is_all_digits("0755")
        True
        >>> is_all_digits("08")
        False
    """
    value = str(value)
    valid_chars = DECIMAL_DIGITS
    start = 0

    if value[:2] in ("0x", "0X"):
        valid_chars = HEX_DIGITS
        start = 2
    elif value[:1] == "0":
        valid_chars = OCTAL_DIGITS
        start = 1
    elif value[:1] == "-":
        start = 1

    return all(char in valid_chars for char in value[start:])


def is_decimal_digits(value: str) -> bool:
    """Check for an optional leading '-' followed by one or more base-10 digits."""
    return _DECIMAL_RE.fullmatch(str(value)) is not None


def _digit_base(value: str) -> int:
    """Numeric base matching the alphabet is_all_digits selected for value."""
    if value[:2] in ("0x", "0X"):
        return 16
    if value[:1] == "0":
        return 8
    return 10


def parse_integer(value: str) -> Optional[int]:
    """
    Parse a value accepted by is_all_digits using the base its prefix selects.

    Returns:
        The integer, or None if the value is not all digits or does not parse
        (e.g. "-" or "0x" on their own)

    Example:
        >>> parse_integer("0x1A")
        26
        >>> parse_integer("0755")
        493
        >>> parse_integer("-42")
        -42
    """
    if not is_all_digits(value):
        return None
    try:
        return int(value, _digit_base(value))
    except ValueError:
        return None


def _in_bounds(value: str, bounds: tuple) -> bool:
    number = parse_integer(value)
    if number is None:
        return False
    low, high = bounds
    return low <= number <= high


def is_byte(value: str) -> bool:
    """Integer in [-128, 127]."""
    return _in_bounds(value, BYTE_BOUNDS)


def is_short(value: str) -> bool:
    """Integer in [-32768, 32767]."""
    return _in_bounds(value, SHORT_BOUNDS)


def is_integer(value: str) -> bool:
    """Integer in [-2147483648, 2147483647]."""
    return _in_bounds(value, INT_BOUNDS)


def parse_float(value: str) -> Optional[float]:
    """Parse a plain decimal or exponent-notation number; None if it is not one."""
    text = str(value)
    if _FLOAT_RE.fullmatch(text) is None:
        return None
    return float(text)


def is_float(value: str) -> bool:
    """
    Check that a value is a decimal number.

    Every '.' is removed and a run of leading zeros stripped before the digit
    check, so values like "0.5" or "-007.10" pass; a leading '-' is handled by
    is_all_digits itself. More than one '.' is rejected.

    Example:
        >>> is_float("-007.10")
        True
        >>> is_float("1.2.3")
        False
    """
    if value.count('.') > 1:
        return False

    joined = value.replace('.', '')
    if not is_all_digits(joined.lstrip('0')):
        return False

    return parse_float(value) is not None


# Range predicates

def _int_param(raw: Param, name: str) -> Optional[int]:
    """Parse an integer rule parameter; None when the parameter is absent."""
    if raw is None or str(raw).strip() == "":
        return None
    text = str(raw).strip()
    if not is_decimal_digits(text):
        raise InvalidRuleParameterError(
            f"Rule parameter '{name}' must be an integer, got: {raw!r}"
        )
    try:
        return int(text, 10)
    except ValueError as e:
        raise InvalidRuleParameterError(
            f"Rule parameter '{name}' could not be parsed: {e}"
        )


def _float_param(raw: Param, name: str) -> Optional[float]:
    """Parse a numeric rule parameter; None when the parameter is absent."""
    if raw is None or str(raw).strip() == "":
        return None
    number = parse_float(str(raw).strip())
    if number is None:
        raise InvalidRuleParameterError(
            f"Rule parameter '{name}' must be a number, got: {raw!r}"
        )
    return number


def is_in_int_range(value: str, min_value: Param = None, max_value: Param = None) -> bool:
    """
    Check that a base-10 integer value lies within [min_value, max_value].

    Args:
        value: Raw field value
        min_value: Inclusive lower bound, None for no lower bound
        max_value: Inclusive upper bound, None for no upper bound

    Returns:
        True if the value parses and lies within the bounds

    Raises:
        InvalidRuleParameterError: If a bound is present but not an integer
    """
    low = _int_param(min_value, "min")
    high = _int_param(max_value, "max")

    if not is_decimal_digits(value):
        return False
    try:
        number = int(value, 10)
    except ValueError:
        # Exceeds the interpreter's integer string conversion limit
        return False

    if low is not None and number < low:
        return False
    if high is not None and number > high:
        return False
    return True


def is_in_float_range(value: str, min_value: Param = None, max_value: Param = None) -> bool:
    """
    Check that a numeric value lies within [min_value, max_value].

    Raises:
        InvalidRuleParameterError: If a bound is present but not a number
    """
    low = _float_param(min_value, "min")
    high = _float_param(max_value, "max")

    number = parse_float(value)
    if number is None:
        return False

    if low is not None and number < low:
        return False
    if high is not None and number > high:
        return False
    return True


# Pattern predicate

def matches_mask(value: str, mask: Optional[str]) -> bool:
    """
    Check that the whole value matches a regular expression.

    Args:
        value: Raw field value
        mask: Regular expression; an absent or empty mask places no constraint

    Raises:
        InvalidRuleParameterError: If the mask is not a valid regular expression

    Example:
        >>> matches_mask("ABC-1234", r"^[A-Z]{3}-\\d{4}$")
        True
        >>> matches_mask("abc-1234", r"^[A-Z]{3}-\\d{4}$")
        False
    """
    if not mask:
        return True
    try:
        return re.fullmatch(mask, value) is not None
    except re.error as e:
        raise InvalidRuleParameterError(f"Invalid mask pattern {mask!r}: {e}")


# Length predicates

def adjusted_length(value: str, line_end_length: Param = None) -> int:
    """
    Compute the length of a value with line endings normalized.

    When a line-end length is declared, every line feed counts as that many
    characters and carriage returns count as nothing:
    ``len + (count('\\n') * line_end_length) - (count('\\r') + count('\\n'))``.

    Args:
        value: Raw field value
        line_end_length: Declared length of one line ending, None for no adjustment

    Returns:
        Adjusted character count

    Example:
        >>> adjusted_length("a\\r\\nb", 2)
        4
        >>> adjusted_length("a\\nb", 2)
        4
    """
    length = len(value)
    end_length = _int_param(line_end_length, "lineEndLength")
    if end_length is None:
        return length

    cr_count = value.count('\r')
    lf_count = value.count('\n')
    return length + (lf_count * end_length) - (cr_count + lf_count)


def is_within_max_length(value: str, maxlength: Param, line_end_length: Param = None) -> bool:
    """Check the adjusted length does not exceed maxlength (absent = no limit)."""
    limit = _int_param(maxlength, "maxlength")
    if limit is None:
        return True
    return adjusted_length(value, line_end_length) <= limit


def meets_min_length(value: str, minlength: Param, line_end_length: Param = None) -> bool:
    """
    Check the adjusted length reaches minlength.

    A value that is empty after trimming never fails; presence is the
    required rule's job.
    """
    limit = _int_param(minlength, "minlength")
    if limit is None or not is_present(value):
        return True
    return adjusted_length(value, line_end_length) >= limit


# Checksum predicate

def luhn_check(value: str) -> bool:
    """
    Check a card number against the Luhn checksum.

    Digits are summed from the rightmost one, doubling every second digit and
    subtracting 9 from doubled digits over 9.

    Returns:
        True if the value is a non-empty run of decimal digits whose sum is
        non-zero and divisible by 10

    Example:
        >>> luhn_check("4111111111111111")
        True
        >>> luhn_check("4111111111111112")
        False
    """
    if not value or not all(char in DECIMAL_DIGITS for char in value):
        return False

    total = 0
    for position, char in enumerate(reversed(value)):
        digit = int(char)
        if position % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit

    return total != 0 and total % 10 == 0
