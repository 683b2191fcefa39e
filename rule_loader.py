#!/usr/bin/env python3
"""
Rule Loader - Builds rule sets from declarative YAML rules files.

A rules file declares, per form, the fields to validate and the ordered list of
rules each field depends on. The loader checks the file against
validation_schema.json, substitutes constants and variables, renders the error
messages and produces the RuleSet the engine evaluates.

Example rules file:
    schema_version: 1
    constants:
      zip: '^[0-9]{5}$'
    forms:
      registrationForm:
        fields:
          - name: zip
            label: ZIP code
            depends: [required, mask]
            vars:
              mask: ${zip}

Message templates use {0}..{3} placeholders. {0} defaults to the field label;
length and range rules fill {1} (and {2}) from their variables. "${name}" is
replaced by a constant everywhere, "${var:name}" by a field variable in args
and messages.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from jsonschema import Draft7Validator

from rule_evaluator import RuleEntry, RuleSet, params_from_mapping

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).parent / "validation_schema.json"

DEFAULT_MESSAGES: Dict[str, str] = {
    'required': "{0} is required.",
    'minlength': "{0} can not be less than {1} characters.",
    'maxlength': "{0} can not be greater than {1} characters.",
    'mask': "{0} is invalid.",
    'byte': "{0} must be a byte.",
    'short': "{0} must be a short.",
    'integer': "{0} must be an integer.",
    'float': "{0} must be a float.",
    'intRange': "{0} is not in the range {1} through {2}.",
    'floatRange': "{0} is not in the range {1} through {2}.",
    'date': "{0} is not a date.",
    'creditCard': "{0} is an invalid credit card number.",
}

# Field variables used as default message arguments {1}, {2}
DEFAULT_ARG_VARS: Dict[str, List[str]] = {
    'minlength': ['minlength'],
    'maxlength': ['maxlength'],
    'intRange': ['min', 'max'],
    'floatRange': ['min', 'max'],
}

_PLACEHOLDER_RE = re.compile(r'\{(\d)\}')

# Cache of parsed rules files, keyed by resolved path
_rules_cache: Dict[Path, Dict[str, Any]] = {}
_schema: Optional[Dict[str, Any]] = None


class RuleConfigError(Exception):
    """Base exception for rules file problems."""
    pass


class RuleSchemaError(RuleConfigError):
    """Exception raised when a rules file is not valid YAML or fails the schema."""
    pass


class RuleSetNotFoundError(RuleConfigError):
    """Exception raised when a rules file has no rules for the requested form."""
    pass


def load_validation_schema() -> Dict[str, Any]:
    """Load the JSON Schema for rules files (read once per process)."""
    global _schema
    if _schema is None:
        with open(SCHEMA_PATH, encoding='utf-8') as f:
            _schema = json.load(f)
    return _schema


def check_rules(config: Any) -> List[str]:
    """
    Check a parsed rules file against the rules schema.

    Args:
        config: Parsed rules file

    Returns:
        List of error messages (empty if the file is valid)
    """
    validator = Draft7Validator(load_validation_schema())
    errors = []

    for error in sorted(validator.iter_errors(config), key=lambda e: [str(p) for p in e.absolute_path]):
        location = "/".join(str(part) for part in error.absolute_path) or "<root>"
        errors.append(f"{location}: {error.message}")

    return errors


def parse_rules(text: str, source: str = "<string>") -> Dict[str, Any]:
    """
    Parse and check rules from YAML text.

    Args:
        text: YAML document
        source: Name used in error messages

    Returns:
        Parsed rules dictionary

    Raises:
        RuleSchemaError: If the YAML cannot be parsed or fails the schema
    """
    try:
        config = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise RuleSchemaError(f"Failed to parse YAML in {source}: {e}")

    errors = check_rules(config)
    if errors:
        raise RuleSchemaError(
            f"Rules file {source} failed schema validation:\n  " + "\n  ".join(errors)
        )

    return config


def load_rules_file(path: Path, use_cache: bool = True) -> Dict[str, Any]:
    """
    Load a rules file with caching.

    Args:
        path: Path to the YAML rules file
        use_cache: Whether to use previously loaded rules (default: True)

    Returns:
        Parsed rules dictionary

    Raises:
        RuleConfigError: If the file cannot be read
        RuleSchemaError: If the file is not valid YAML or fails the schema
    """
    path = Path(path)
    key = path.resolve()

    if use_cache and key in _rules_cache:
        return _rules_cache[key]

    try:
        text = path.read_text(encoding='utf-8')
    except OSError as e:
        raise RuleConfigError(f"Cannot read rules file {path}: {e}")

    config = parse_rules(text, source=str(path))
    logger.debug("Loaded rules file %s (%d forms)", path, len(config['forms']))

    if use_cache:
        _rules_cache[key] = config

    return config


def clear_cache() -> None:
    """Forget all cached rules files."""
    _rules_cache.clear()


def _replace_tokens(text: str, replacements: Dict[str, str]) -> str:
    for token, value in replacements.items():
        text = text.replace(token, value)
    return text


def format_message(template: str, args: List[str]) -> str:
    """
    Fill {0}..{3} placeholders in a message template.

    Placeholders without a matching argument are left as they are.

    Example:
        >>> format_message("{0} is not in the range {1} through {2}.", ["Age", "18", "65"])
        'Age is not in the range 18 through 65.'
    """
    def substitute(match: re.Match) -> str:
        index = int(match.group(1))
        return args[index] if index < len(args) else match.group(0)

    return _PLACEHOLDER_RE.sub(substitute, template)


def effective_rules(config: Dict[str, Any], form_name: str) -> List[Dict[str, Any]]:
    """
    Resolve the rules of one form with constants, variables and messages applied.

    Args:
        config: Parsed rules file
        form_name: Form to resolve

    Returns:
        One dictionary per rule entry, in declaration order, with keys
        'field', 'rule', 'message' and 'vars'

    Raises:
        RuleSetNotFoundError: If the rules file has no such form
    """
    forms = config.get('forms') or {}
    if form_name not in forms:
        raise RuleSetNotFoundError(
            f"No rules defined for form '{form_name}'. "
            f"Available forms: {', '.join(forms) or 'none'}"
        )

    constants = {
        f"${{{name}}}": str(value)
        for name, value in (config.get('constants') or {}).items()
    }
    messages = dict(DEFAULT_MESSAGES)
    messages.update(config.get('messages') or {})

    resolved = []
    for field_config in forms[form_name].get('fields') or []:
        field_name = _replace_tokens(field_config['name'], constants)
        label = _replace_tokens(str(field_config.get('label', field_name)), constants)

        field_vars = {
            name: _replace_tokens(str(value), constants)
            for name, value in (field_config.get('vars') or {}).items()
        }
        var_tokens = {f"${{var:{name}}}": value for name, value in field_vars.items()}
        overrides = [str(arg) for arg in field_config.get('args') or []]
        field_msgs = field_config.get('msgs') or {}

        for rule in field_config.get('depends') or []:
            args = [label] + [f"${{var:{name}}}" for name in DEFAULT_ARG_VARS.get(rule, [])]
            for index, arg in enumerate(overrides):
                if index < len(args):
                    args[index] = arg
                else:
                    args.append(arg)
            args = [_replace_tokens(_replace_tokens(arg, constants), var_tokens) for arg in args]

            template = field_msgs.get(rule, messages.get(rule, "{0} is invalid."))
            template = _replace_tokens(_replace_tokens(template, constants), var_tokens)

            resolved.append({
                'field': field_name,
                'rule': rule,
                'message': format_message(template, args),
                'vars': dict(field_vars),
            })

    return resolved


def build_rule_set(config: Dict[str, Any], form_name: str) -> RuleSet:
    """
    Build the rule set for one form.

    Raises:
        RuleSetNotFoundError: If the rules file has no such form
    """
    entries = [
        RuleEntry(
            rule=resolved['rule'],
            field_name=resolved['field'],
            error_message=resolved['message'],
            param_lookup=params_from_mapping(resolved['vars']),
        )
        for resolved in effective_rules(config, form_name)
    ]
    return RuleSet(form_name=form_name, entries=entries)


class RuleSetFactory:
    """
    Produces rule sets by form name from a parsed rules file.

    Example:
        >>> factory = RuleSetFactory.from_file(Path("rules.yaml"))
        >>> rule_set = factory.for_form("registrationForm")
    """

    def __init__(self, config: Dict[str, Any]):
        self.config = config

    @classmethod
    def from_file(cls, path: Path, use_cache: bool = True) -> 'RuleSetFactory':
        return cls(load_rules_file(path, use_cache=use_cache))

    def form_names(self) -> List[str]:
        return list(self.config.get('forms') or {})

    def for_form(self, form_name: str) -> RuleSet:
        return build_rule_set(self.config, form_name)
