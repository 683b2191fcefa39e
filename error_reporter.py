#!/usr/bin/env python3
"""
Error reporters for failed validation passes.

A reporter receives the ordered failure messages and the field that should get
focus. Reporters are purely observational: nothing they do changes the outcome
of a validation pass.
"""

import sys
from typing import Any, List, Optional, Protocol, Sequence, TextIO, Tuple


class ErrorReporter(Protocol):
    """Collaborator notified once at the end of a failed validation pass."""

    def report(self, messages: Sequence[str], focus_target: Optional[Any]) -> None:
        ...


class ConsoleReporter:
    """
    Print failure messages to a stream in the CLI's console format.

    Example output:
        [ERROR] Age must be an integer.
        [ERROR] Start date is not a date.
          Focus: age
    """

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream

    def report(self, messages: Sequence[str], focus_target: Optional[Any]) -> None:
        stream = self.stream or sys.stderr
        for message in messages:
            print(f"[ERROR] {message}", file=stream)
        if focus_target is not None:
            print(f"  Focus: {getattr(focus_target, 'name', focus_target)}", file=stream)


class CollectingReporter:
    """Record every report call; used by host integrations and tests."""

    def __init__(self):
        self.calls: List[Tuple[List[str], Optional[Any]]] = []

    def report(self, messages: Sequence[str], focus_target: Optional[Any]) -> None:
        self.calls.append((list(messages), focus_target))

    @property
    def last_messages(self) -> List[str]:
        return self.calls[-1][0] if self.calls else []

    @property
    def last_focus(self) -> Optional[Any]:
        return self.calls[-1][1] if self.calls else None
