"""
Teamwork Prompts — Interactive collaborators consumed by the services.

MemberSelector     — pick a roster member for an assignee/uploader, or None
ConfirmationPrompt — proceed/cancel before a destructive action

Console implementations back the CLI; FixedSelector / AutoConfirm /
DenyConfirm serve non-interactive flags and tests.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Protocol, runtime_checkable

from teamwork.records.models import Member

logger = logging.getLogger("teamwork.prompts")

NO_MEMBERS_WARNING = "No members yet. Add team members first (teamwork member add)."


@runtime_checkable
class MemberSelector(Protocol):
    def select(self, prompt: str, members: List[Member]) -> Optional[str]:
        """Return the chosen member name, or None when nothing was chosen."""
        ...


@runtime_checkable
class ConfirmationPrompt(Protocol):
    def confirm(self, message: str) -> bool:
        ...


class FixedSelector:
    """Selects a preset name, provided it is on the roster."""

    def __init__(self, name: Optional[str]):
        self._name = name

    def select(self, prompt: str, members: List[Member]) -> Optional[str]:
        if self._name is None:
            return None
        if any(m.name == self._name for m in members):
            return self._name
        logger.warning(f"'{self._name}' is not a team member, nothing selected")
        return None


class AutoConfirm:
    def confirm(self, message: str) -> bool:
        return True


class DenyConfirm:
    def confirm(self, message: str) -> bool:
        return False


class ConsoleSelector:
    """Numbered roster menu on the terminal. Blank input cancels."""

    def __init__(
        self,
        input_fn: Optional[Callable[[str], str]] = None,
        output_fn: Optional[Callable[[str], None]] = None,
    ):
        self._input = input_fn or input
        self._output = output_fn or print

    def select(self, prompt: str, members: List[Member]) -> Optional[str]:
        if not members:
            self._output(f"[WARN] {NO_MEMBERS_WARNING}")
            return None

        self._output(prompt)
        for i, member in enumerate(members, start=1):
            role = f" ({member.role})" if member.role else ""
            self._output(f"  {i}. {member.name}{role}")

        while True:
            answer = self._input("Number (blank to cancel): ").strip()
            if not answer:
                return None
            if answer.isdigit() and 1 <= int(answer) <= len(members):
                return members[int(answer) - 1].name
            for member in members:
                if member.name == answer:
                    return member.name
            self._output(f"Choose 1-{len(members)} or leave blank to cancel.")


class ConsoleConfirm:
    def __init__(self, input_fn: Optional[Callable[[str], str]] = None):
        self._input = input_fn or input

    def confirm(self, message: str) -> bool:
        answer = self._input(f"{message} [y/N]: ").strip().lower()
        return answer in ("y", "yes")
