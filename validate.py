#!/usr/bin/env python3
"""Command-line front end for declarative form validation."""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from date_pattern import DatePatternError, interpret_date_pattern, is_valid_date, parse_date
from error_reporter import ConsoleReporter
from field_resolver import Form, form_from_dict
from rule_evaluator import validate_form
from rule_loader import RuleConfigError, RuleSetFactory, effective_rules, load_rules_file

EXIT_OK = 0
EXIT_INVALID = 1
EXIT_CONFIG_ERROR = 2


def load_form_snapshot(path: Path, name: str = "") -> Form:
    """Load a form snapshot (YAML or JSON) describing field kinds and values.

    Args:
        path: Path to the snapshot file
        name: Form name to attach to the snapshot

    Returns:
        Form built from the file's ``fields`` mapping

    Raises:
        ValueError: If the file is not a mapping or declares an unknown field kind
    """
    try:
        data = yaml.safe_load(path.read_text(encoding='utf-8'))
    except yaml.YAMLError as e:
        raise ValueError(f"Failed to parse form snapshot {path}: {e}")

    if not isinstance(data, dict):
        raise ValueError(f"Form snapshot {path} must be a mapping with a 'fields' key")

    return form_from_dict(data, name=name)


def validate_form_command(args) -> int:
    """Validate a form snapshot against the rules of one form.

    Args:
        args: Command-line arguments from argparse

    Returns:
        Exit code: 0 if valid, 1 on validation failures, 2 on configuration errors
    """
    try:
        rule_set = RuleSetFactory.from_file(Path(args.rules)).for_form(args.form)
        form = load_form_snapshot(Path(args.form_file), name=args.form)
    except RuleConfigError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except (OSError, ValueError) as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    result = validate_form(form, rule_set, reporter=ConsoleReporter())

    if not result.valid:
        if getattr(args, 'details', False):
            print(file=sys.stderr)
            for failure in result.failures:
                print(failure.format_error(), file=sys.stderr)
        print(f"\n[SUMMARY] {len(result.failures)} of {len(rule_set)} rules failed "
              f"for form '{args.form}'", file=sys.stderr)
        return EXIT_INVALID

    print(f"Validation passed: {args.form} ({len(rule_set)} rules)")
    return EXIT_OK


def check_rules_command(args) -> int:
    """Check a rules file against the rules schema and summarize its forms.

    Args:
        args: Command-line arguments from argparse

    Returns:
        Exit code: 0 on success, 2 if the file is invalid
    """
    try:
        config = load_rules_file(Path(args.rules), use_cache=False)
    except RuleConfigError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    forms = config['forms']
    for form_name, form_config in forms.items():
        fields = form_config.get('fields') or []
        rule_count = sum(len(f.get('depends') or []) for f in fields)
        print(f"  {form_name}: {len(fields)} fields, {rule_count} rules")

    print(f"[SUCCESS] Rules check passed: {len(forms)} forms in {args.rules}")
    return EXIT_OK


def show_rules_command(args) -> int:
    """Show the effective rules of one form after substitutions.

    Args:
        args: Command-line arguments from argparse

    Returns:
        Exit code: 0 on success, 2 on configuration errors
    """
    try:
        config = load_rules_file(Path(args.rules))
        rules = effective_rules(config, args.form)
    except RuleConfigError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    print(f"=== Effective Validation Rules for {args.form} ===")
    print(f"Rules file: {args.rules}\n")
    print(yaml.dump(rules, default_flow_style=False, sort_keys=False))
    print("=" * 60)
    return EXIT_OK


def check_date_command(args) -> int:
    """Interpret a date pattern and check a single value against it.

    Args:
        args: Command-line arguments from argparse

    Returns:
        Exit code: 0 if the value is a valid date for the pattern, 1 otherwise
    """
    try:
        spec = interpret_date_pattern(args.pattern, strict=not args.loose)
    except DatePatternError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return EXIT_INVALID

    print(f"Pattern: {args.pattern} -> {spec.describe()}")
    print(f"Matcher: {spec.regex.pattern}")

    parts = parse_date(args.value, spec)
    if parts is None:
        print(f"[ERROR] Value {args.value!r} does not match the pattern", file=sys.stderr)
        return EXIT_INVALID

    day, month, year = parts
    print(f"Day: {day}  Month: {month}  Year: {year}")

    if not is_valid_date(day, month, year):
        print(f"[ERROR] Value {args.value!r} is not a calendar date", file=sys.stderr)
        return EXIT_INVALID

    print("Valid date")
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the validation tool."""
    parser = argparse.ArgumentParser(
        description="Validate form snapshots against declarative rules",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s check-rules rules.yaml
  %(prog)s validate-form rules.yaml form.yaml --form registrationForm
  %(prog)s check-date MM/dd/yyyy 02/29/2024
        """
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Log skipped rules and predicate errors'
    )

    subparsers = parser.add_subparsers(
        dest='command',
        required=True,
        help='Command to run'
    )

    # validate-form subcommand
    parser_validate = subparsers.add_parser(
        'validate-form',
        help='Validate a form snapshot against the rules of one form'
    )
    parser_validate.add_argument('rules', help='YAML rules file')
    parser_validate.add_argument('form_file', help='YAML or JSON form snapshot')
    parser_validate.add_argument('--form', required=True, help='Form name in the rules file')
    parser_validate.add_argument(
        '--details',
        action='store_true',
        help='Show rule, value and diagnostic detail for each failure'
    )

    # check-rules subcommand
    parser_check = subparsers.add_parser(
        'check-rules',
        help='Check a rules file against the rules schema'
    )
    parser_check.add_argument('rules', help='YAML rules file')

    # show-rules subcommand
    parser_show = subparsers.add_parser(
        'show-rules',
        help='Show resolved rules, messages and variables of one form'
    )
    parser_show.add_argument('rules', help='YAML rules file')
    parser_show.add_argument('--form', required=True, help='Form name in the rules file')

    # check-date subcommand
    parser_date = subparsers.add_parser(
        'check-date',
        help='Interpret a date pattern and check one value'
    )
    parser_date.add_argument('pattern', help='Date pattern, e.g. MM/dd/yyyy')
    parser_date.add_argument('value', help='Value to check')
    parser_date.add_argument(
        '--loose',
        action='store_true',
        help='Allow one-digit day and month'
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="[%(levelname)s] %(name)s: %(message)s",
    )

    handlers: Dict[str, callable] = {
        'validate-form': validate_form_command,
        'check-rules': check_rules_command,
        'show-rules': show_rules_command,
        'check-date': check_date_command,
    }

    handler = handlers.get(args.command)
    if handler is None:
        print(f"Error: Unknown command '{args.command}'", file=sys.stderr)
        return 1

    return handler(args)


if __name__ == "__main__":
    sys.exit(main())
