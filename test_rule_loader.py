#!/usr/bin/env python3
"""
Tests for rule_loader.py - Rule set construction from YAML rules files.

Test coverage:
- Parsing and schema checking of rules files
- Rule entry order follows field order, then depends order
- Default and overridden message templates with arguments
- Constant and variable substitution
- Unknown forms raise RuleSetNotFoundError
- File caching
- End-to-end validation with a loaded rule set
"""

import tempfile
import textwrap
import unittest
from pathlib import Path

import rule_loader
from field_resolver import form_from_dict
from rule_evaluator import validate_form
from rule_loader import (
    RuleConfigError,
    RuleSchemaError,
    RuleSetFactory,
    RuleSetNotFoundError,
    build_rule_set,
    effective_rules,
    format_message,
    load_rules_file,
    parse_rules,
)


RULES_YAML = textwrap.dedent("""
    schema_version: 1
    constants:
      zip: '^[0-9]{5}$'
      year: '2024'
    messages:
      required: '{0} must be filled in.'
    forms:
      registrationForm:
        fields:
          - name: name
            label: Full name
            depends: [required, maxlength]
            vars:
              maxlength: 20
          - name: age
            label: Age
            depends: [required, intRange]
            vars:
              min: 18
              max: 65
          - name: zip
            label: ZIP code
            depends: [mask]
            vars:
              mask: ${zip}
          - name: startDate
            label: Start date
            depends: [date]
            vars:
              datePatternStrict: MM/dd/yyyy
            msgs:
              date: '{0} must look like MM/dd/${year}.'
      loginForm:
        fields:
          - name: password
            depends: [required, minlength]
            vars:
              minlength: 8
            args: [Your password]
""")


class TestParsing(unittest.TestCase):
    """Test parsing and schema checking."""

    def test_parse_valid_rules(self):
        config = parse_rules(RULES_YAML)
        self.assertEqual(set(config["forms"]), {"registrationForm", "loginForm"})

    def test_invalid_yaml(self):
        with self.assertRaises(RuleSchemaError) as ctx:
            parse_rules("forms: [unclosed", source="broken.yaml")
        self.assertIn("broken.yaml", str(ctx.exception))

    def test_schema_violation(self):
        text = textwrap.dedent("""
            schema_version: 1
            forms:
              f:
                fields:
                  - name: a
                    depends: [email]
        """)
        with self.assertRaises(RuleSchemaError) as ctx:
            parse_rules(text)
        self.assertIn("forms/f/fields/0/depends/0", str(ctx.exception))

    def test_range_rule_requires_bounds(self):
        text = textwrap.dedent("""
            schema_version: 1
            forms:
              f:
                fields:
                  - name: a
                    depends: [intRange]
                    vars:
                      min: 1
        """)
        with self.assertRaises(RuleSchemaError):
            parse_rules(text)

    def test_empty_document(self):
        with self.assertRaises(RuleSchemaError):
            parse_rules("")

    def test_schema_error_is_config_error(self):
        self.assertTrue(issubclass(RuleSchemaError, RuleConfigError))
        self.assertTrue(issubclass(RuleSetNotFoundError, RuleConfigError))


class TestRuleSetConstruction(unittest.TestCase):
    """Test building rule sets from parsed rules."""

    def setUp(self):
        self.config = parse_rules(RULES_YAML)

    def test_entry_order(self):
        rule_set = build_rule_set(self.config, "registrationForm")
        self.assertEqual(rule_set.form_name, "registrationForm")
        self.assertEqual(
            [(e.field_name, e.rule) for e in rule_set],
            [
                ("name", "required"),
                ("name", "maxlength"),
                ("age", "required"),
                ("age", "intRange"),
                ("zip", "mask"),
                ("startDate", "date"),
            ],
        )

    def test_messages(self):
        messages = [e.error_message for e in build_rule_set(self.config, "registrationForm")]
        self.assertEqual(messages, [
            "Full name must be filled in.",
            "Full name can not be greater than 20 characters.",
            "Age must be filled in.",
            "Age is not in the range 18 through 65.",
            "ZIP code is invalid.",
            "Start date must look like MM/dd/2024.",
        ])

    def test_label_defaults_to_name_and_args_override(self):
        messages = [e.error_message for e in build_rule_set(self.config, "loginForm")]
        self.assertEqual(messages, [
            "Your password must be filled in.",
            "Your password can not be less than 8 characters.",
        ])

    def test_params_with_constants(self):
        entries = list(build_rule_set(self.config, "registrationForm"))
        zip_entry = entries[4]
        self.assertEqual(zip_entry.param_lookup("mask"), "^[0-9]{5}$")
        self.assertIsNone(zip_entry.param_lookup("min"))

        age_entry = entries[3]
        self.assertEqual(age_entry.param_lookup("min"), "18")
        self.assertEqual(age_entry.param_lookup("max"), "65")

    def test_effective_rules(self):
        rules = effective_rules(self.config, "registrationForm")
        self.assertEqual(rules[3], {
            "field": "age",
            "rule": "intRange",
            "message": "Age is not in the range 18 through 65.",
            "vars": {"min": "18", "max": "65"},
        })

    def test_unknown_form(self):
        with self.assertRaises(RuleSetNotFoundError) as ctx:
            build_rule_set(self.config, "checkoutForm")
        self.assertIn("registrationForm", str(ctx.exception))

    def test_factory(self):
        factory = RuleSetFactory(self.config)
        self.assertEqual(factory.form_names(), ["registrationForm", "loginForm"])
        self.assertEqual(len(factory.for_form("loginForm")), 2)


class TestFormatMessage(unittest.TestCase):
    """Test message placeholder substitution."""

    def test_placeholders(self):
        self.assertEqual(format_message("{0} and {1}", ["a", "b"]), "a and b")

    def test_missing_argument_left_in_place(self):
        self.assertEqual(format_message("{0} and {3}", ["a"]), "a and {3}")

    def test_regex_braces_untouched(self):
        self.assertEqual(format_message("{0} needs [0-9]{5}", ["Zip"]), "Zip needs [0-9]{5}")


class TestLoadRulesFile(unittest.TestCase):
    """Test loading rules files from disk."""

    def setUp(self):
        rule_loader.clear_cache()

    def tearDown(self):
        rule_loader.clear_cache()

    def test_load_and_cache(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "rules.yaml"
            path.write_text(RULES_YAML)

            first = load_rules_file(path)
            path.write_text("not: [valid")
            second = load_rules_file(path)

            self.assertIs(first, second)

            with self.assertRaises(RuleSchemaError):
                load_rules_file(path, use_cache=False)

    def test_missing_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with self.assertRaises(RuleConfigError):
                load_rules_file(Path(tmpdir) / "missing.yaml")

    def test_end_to_end(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "rules.yaml"
            path.write_text(RULES_YAML)

            rule_set = RuleSetFactory.from_file(path).for_form("registrationForm")
            form = form_from_dict({
                "fields": {
                    "name": {"kind": "text", "value": "Ada Lovelace"},
                    "age": {"kind": "text", "value": "17"},
                    "zip": {"kind": "text", "value": "1234"},
                    "startDate": {"kind": "text", "value": "02/29/2024"},
                }
            })

            result = validate_form(form, rule_set)

            self.assertEqual(result.messages, [
                "Age is not in the range 18 through 65.",
                "ZIP code is invalid.",
            ])
            self.assertIs(result.focus_target, form.get("age"))


if __name__ == '__main__':
    unittest.main()
