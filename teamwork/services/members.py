"""
Teamwork Member Service — Append-only team roster.

Names are unique (case-sensitive, after trimming). Adding a member fires
MEMBERS_CHANGED: the roster feeds the contribution table and the assignee
filter, not the task or document lists.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from teamwork.engine.errors import TeamworkDuplicateName
from teamwork.engine.events import ChangeEvent, ChangeNotifier
from teamwork.records.models import Collection, Member
from teamwork.records.store import Store

logger = logging.getLogger("teamwork.services.members")


class MemberService:

    def __init__(self, store: Store, notifier: ChangeNotifier):
        self._store = store
        self._notifier = notifier

    def list(self) -> List[Member]:
        return self._store.get(Collection.MEMBERS)  # type: ignore[return-value]

    def names(self) -> List[str]:
        return [m.name for m in self.list()]

    def get_by_name(self, name: str) -> Optional[Member]:
        for member in self.list():
            if member.name == name:
                return member
        return None

    def create(self, name: str, role: str = "") -> Member:
        """
        Add a member.

        Raises:
            TeamworkDuplicateName: the name is already on the roster (nothing written).
            TeamworkValidationError: the name is blank.
        """
        name = (name or "").strip()
        role = (role or "").strip()

        if self.get_by_name(name) is not None:
            raise TeamworkDuplicateName(
                f"A member named '{name}' already exists",
                collection=Collection.MEMBERS,
                operation="create",
                name=name,
            )

        member: Member = self._store.add(Collection.MEMBERS, {"name": name, "role": role})  # type: ignore[assignment]
        logger.info(f"Member added: {member.name}")
        self._notifier.fire(ChangeEvent.MEMBERS_CHANGED, {
            "collection": Collection.MEMBERS,
            "operation": "create",
            "record_id": member.id,
        })
        return member
