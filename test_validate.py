#!/usr/bin/env python3
"""
Test suite for the validate.py command-line tool.

Tests each subcommand end to end through main(), including exit codes and
console output, plus the console reporter format.
"""

import io
import textwrap

import pytest

import rule_loader
from error_reporter import CollectingReporter, ConsoleReporter
from field_resolver import FieldHandle, FieldKind
from validate import EXIT_CONFIG_ERROR, EXIT_INVALID, EXIT_OK, load_form_snapshot, main


RULES = textwrap.dedent("""
    schema_version: 1
    forms:
      registrationForm:
        fields:
          - name: name
            label: Full name
            depends: [required]
          - name: age
            label: Age
            depends: [required, integer, intRange]
            vars:
              min: 18
              max: 65
          - name: startDate
            label: Start date
            depends: [date]
            vars:
              datePatternStrict: MM/dd/yyyy
""")

VALID_FORM = textwrap.dedent("""
    fields:
      name: {kind: text, value: Ada}
      age: {kind: text, value: '36'}
      startDate: {kind: text, value: 02/29/2024}
""")

INVALID_FORM = textwrap.dedent("""
    fields:
      name: {kind: text, value: '   '}
      age: {kind: text, value: '17'}
      startDate: {kind: text, value: 02/30/2024}
""")


@pytest.fixture(autouse=True)
def fresh_cache():
    rule_loader.clear_cache()
    yield
    rule_loader.clear_cache()


@pytest.fixture
def rules_file(tmp_path):
    path = tmp_path / "rules.yaml"
    path.write_text(RULES)
    return path


def write_form(tmp_path, text):
    path = tmp_path / "form.yaml"
    path.write_text(text)
    return path


# ============================================================================
# validate-form
# ============================================================================

def test_validate_form_passes(tmp_path, rules_file, capsys):
    """Test a valid snapshot exits 0."""
    form_file = write_form(tmp_path, VALID_FORM)

    code = main(["validate-form", str(rules_file), str(form_file), "--form", "registrationForm"])

    assert code == EXIT_OK
    assert "Validation passed: registrationForm (5 rules)" in capsys.readouterr().out


def test_validate_form_reports_failures(tmp_path, rules_file, capsys):
    """Test failures are reported in order with the focus field."""
    form_file = write_form(tmp_path, INVALID_FORM)

    code = main(["validate-form", str(rules_file), str(form_file), "--form", "registrationForm"])

    err = capsys.readouterr().err
    assert code == EXIT_INVALID
    lines = [line for line in err.splitlines() if line.startswith("[ERROR]")]
    assert lines == [
        "[ERROR] Full name is required.",
        "[ERROR] Age is not in the range 18 through 65.",
        "[ERROR] Start date is not a date.",
    ]
    assert "  Focus: name" in err
    assert "[SUMMARY] 3 of 5 rules failed for form 'registrationForm'" in err


def test_validate_form_details(tmp_path, rules_file, capsys):
    """Test --details prints the rule and found value per failure."""
    form_file = write_form(tmp_path, INVALID_FORM)

    code = main(["validate-form", str(rules_file), str(form_file),
                 "--form", "registrationForm", "--details"])

    err = capsys.readouterr().err
    assert code == EXIT_INVALID
    assert "[ERROR] age: intRange" in err
    assert 'Found: "17"' in err


def test_validate_form_unknown_form(tmp_path, rules_file, capsys):
    """Test an unknown form name is a configuration error."""
    form_file = write_form(tmp_path, VALID_FORM)

    code = main(["validate-form", str(rules_file), str(form_file), "--form", "checkoutForm"])

    assert code == EXIT_CONFIG_ERROR
    assert "No rules defined for form 'checkoutForm'" in capsys.readouterr().err


def test_validate_form_bad_snapshot(tmp_path, rules_file, capsys):
    """Test a snapshot that is not a mapping is a configuration error."""
    form_file = write_form(tmp_path, "- just\n- a list\n")

    code = main(["validate-form", str(rules_file), str(form_file), "--form", "registrationForm"])

    assert code == EXIT_CONFIG_ERROR
    assert "must be a mapping" in capsys.readouterr().err


def test_validate_form_malformed_field_entry(tmp_path, rules_file, capsys):
    """Test a field entry that is not a mapping is a configuration error."""
    form_file = write_form(tmp_path, "fields:\n  name: Ada\n")

    code = main(["validate-form", str(rules_file), str(form_file), "--form", "registrationForm"])

    assert code == EXIT_CONFIG_ERROR
    assert "Field 'name' must be a mapping" in capsys.readouterr().err


def test_validate_form_missing_snapshot(tmp_path, rules_file, capsys):
    """Test a missing snapshot file is a configuration error."""
    code = main(["validate-form", str(rules_file), str(tmp_path / "nope.yaml"),
                 "--form", "registrationForm"])

    assert code == EXIT_CONFIG_ERROR
    assert "[ERROR]" in capsys.readouterr().err


def test_load_form_snapshot_json(tmp_path):
    """Test JSON snapshots load through the YAML parser."""
    path = tmp_path / "form.json"
    path.write_text('{"fields": {"qty": {"kind": "select-one", "options": ["1", "2"], "selected_index": 0}}}')

    form = load_form_snapshot(path, name="orderForm")

    assert form.name == "orderForm"
    assert form.get("qty").selected_value == "1"


# ============================================================================
# check-rules / show-rules
# ============================================================================

def test_check_rules_passes(rules_file, capsys):
    """Test a valid rules file is summarized per form."""
    code = main(["check-rules", str(rules_file)])

    out = capsys.readouterr().out
    assert code == EXIT_OK
    assert "  registrationForm: 3 fields, 5 rules" in out
    assert "[SUCCESS] Rules check passed: 1 forms" in out


def test_check_rules_schema_failure(tmp_path, capsys):
    """Test schema violations exit 2 with the offending path."""
    path = tmp_path / "rules.yaml"
    path.write_text(textwrap.dedent("""
        schema_version: 1
        forms:
          f:
            fields:
              - name: a
                depends: [mask]
    """))

    code = main(["check-rules", str(path)])

    err = capsys.readouterr().err
    assert code == EXIT_CONFIG_ERROR
    assert "failed schema validation" in err
    assert "forms/f/fields/0" in err


def test_show_rules(rules_file, capsys):
    """Test effective rules are dumped with rendered messages."""
    code = main(["show-rules", str(rules_file), "--form", "registrationForm"])

    out = capsys.readouterr().out
    assert code == EXIT_OK
    assert "=== Effective Validation Rules for registrationForm ===" in out
    assert "message: Age is not in the range 18 through 65." in out
    assert "datePatternStrict: MM/dd/yyyy" in out


def test_show_rules_unknown_form(rules_file, capsys):
    """Test show-rules with an unknown form exits 2."""
    code = main(["show-rules", str(rules_file), "--form", "nope"])

    assert code == EXIT_CONFIG_ERROR
    assert "Available forms: registrationForm" in capsys.readouterr().err


# ============================================================================
# check-date
# ============================================================================

def test_check_date_valid(capsys):
    """Test a valid date prints its parts."""
    code = main(["check-date", "MM/dd/yyyy", "02/29/2024"])

    out = capsys.readouterr().out
    assert code == EXIT_OK
    assert "Pattern: MM/dd/yyyy -> month/day/year (strict)" in out
    assert "Day: 29  Month: 2  Year: 2024" in out
    assert "Valid date" in out


def test_check_date_not_a_calendar_date(capsys):
    """Test an impossible day exits 1."""
    code = main(["check-date", "MM/dd/yyyy", "02/29/2023"])

    assert code == EXIT_INVALID
    assert "not a calendar date" in capsys.readouterr().err


def test_check_date_loose(capsys):
    """Test --loose accepts one-digit parts."""
    assert main(["check-date", "dd.MM.yyyy", "9.2.2024", "--loose"]) == EXIT_OK
    assert main(["check-date", "dd.MM.yyyy", "9.2.2024"]) == EXIT_INVALID


def test_check_date_unsupported_pattern(capsys):
    """Test an unsupported token order exits 1."""
    code = main(["check-date", "yyyy/dd/MM", "2024/29/02"])

    assert code == EXIT_INVALID
    assert "unsupported token order" in capsys.readouterr().err


# ============================================================================
# Reporters
# ============================================================================

def test_console_reporter_format():
    """Test messages and focus are printed in console format."""
    stream = io.StringIO()
    ConsoleReporter(stream).report(
        ["Age must be an integer.", "Start date is not a date."],
        FieldHandle("age", FieldKind.TEXT),
    )

    assert stream.getvalue() == (
        "[ERROR] Age must be an integer.\n"
        "[ERROR] Start date is not a date.\n"
        "  Focus: age\n"
    )


def test_collecting_reporter():
    """Test every call is recorded."""
    reporter = CollectingReporter()
    assert reporter.last_messages == []
    assert reporter.last_focus is None

    reporter.report(["a"], "focus")

    assert reporter.calls == [(["a"], "focus")]
    assert reporter.last_messages == ["a"]
    assert reporter.last_focus == "focus"
