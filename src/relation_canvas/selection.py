"""Selected person, group and connection ids."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable


def _toggle(ids: list[str], item: str, multi: bool) -> list[str]:
    if not multi:
        return [item]
    if item in ids:
        return [i for i in ids if i != item]
    return ids + [item]


@dataclass
class Selection:
    """Three independent id lists.

    Selecting a single item replaces only the list of its own kind; the
    other kinds are left as they are.  With ``multi`` (shift held) the
    item is toggled instead.
    """
    person_ids: list[str] = field(default_factory=list)
    group_ids: list[str] = field(default_factory=list)
    connection_ids: list[str] = field(default_factory=list)

    def select_person(self, person_id: str, multi: bool = False) -> None:
        self.person_ids = _toggle(self.person_ids, person_id, multi)

    def select_group(self, group_id: str, multi: bool = False) -> None:
        self.group_ids = _toggle(self.group_ids, group_id, multi)

    def select_connection(self, connection_id: str, multi: bool = False) -> None:
        self.connection_ids = _toggle(self.connection_ids, connection_id, multi)

    def select_persons(self, person_ids: Iterable[str]) -> None:
        self.person_ids = list(person_ids)

    def select_connections(self, connection_ids: Iterable[str]) -> None:
        self.connection_ids = list(connection_ids)

    def clear(self) -> None:
        self.person_ids = []
        self.group_ids = []
        self.connection_ids = []

    def prune(self, person_ids: set[str], group_ids: set[str], connection_ids: set[str]) -> None:
        """Drop ids that no longer exist."""
        self.person_ids = [i for i in self.person_ids if i in person_ids]
        self.group_ids = [i for i in self.group_ids if i in group_ids]
        self.connection_ids = [i for i in self.connection_ids if i in connection_ids]

    @property
    def is_empty(self) -> bool:
        return not (self.person_ids or self.group_ids or self.connection_ids)

    def is_person_selected(self, person_id: str) -> bool:
        return person_id in self.person_ids
