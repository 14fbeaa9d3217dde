"""Person search: fuzzy text match plus attribute filters."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

from .models import Person


def fuzzy_match(text: str, query: str) -> bool:
    """Case-insensitive substring or in-order subsequence match.

    An empty query matches everything.
    """
    if not query:
        return True
    text = text.lower()
    query = query.lower()
    if query in text:
        return True
    it = iter(text)
    return all(ch in it for ch in query)


@dataclass
class SearchCriteria:
    """Filters combined with AND.  Unset filters match everything."""
    query: str = ""
    min_score: Optional[int] = None
    max_score: Optional[int] = None
    positions: list[str] = field(default_factory=list)
    group_ids: list[str] = field(default_factory=list)
    frame_colors: list[str] = field(default_factory=list)
    advocate_only: bool = False

    def label(self) -> str:
        """Short human-readable summary, e.g. for a search history entry."""
        parts = []
        if self.query:
            parts.append(f'"{self.query}"')
        if self.min_score is not None and self.max_score is not None:
            parts.append(f"score: {self.min_score}-{self.max_score}")
        elif self.min_score is not None:
            parts.append(f"score >= {self.min_score}")
        elif self.max_score is not None:
            parts.append(f"score <= {self.max_score}")
        if self.positions:
            parts.append(f"positions: {', '.join(self.positions)}")
        if self.group_ids:
            parts.append(f"{len(self.group_ids)} group(s)")
        if self.frame_colors:
            parts.append(f"colors: {', '.join(self.frame_colors)}")
        if self.advocate_only:
            parts.append("advocates only")
        return " | ".join(parts) if parts else "All persons"


def _position_lines(person: Person) -> list[str]:
    return [line for line in (person.position, person.position2, person.position3) if line]


def matches(person: Person, criteria: SearchCriteria) -> bool:
    if criteria.query:
        fields = [person.name] + _position_lines(person)
        if not any(fuzzy_match(text, criteria.query) for text in fields):
            return False
    if criteria.min_score is not None and person.score < criteria.min_score:
        return False
    if criteria.max_score is not None and person.score > criteria.max_score:
        return False
    if criteria.positions:
        lines = [line.lower() for line in _position_lines(person)]
        if not any(pos.lower() in line for pos in criteria.positions for line in lines):
            return False
    if criteria.group_ids and person.group_id not in criteria.group_ids:
        return False
    if criteria.frame_colors and person.frame_color not in criteria.frame_colors:
        return False
    if criteria.advocate_only and not person.advocate:
        return False
    return True


def search_persons(persons: Iterable[Person], criteria: SearchCriteria | str) -> list[Person]:
    """Persons matching ``criteria`` (a plain string is a text query), in input order."""
    if isinstance(criteria, str):
        criteria = SearchCriteria(query=criteria)
    return [p for p in persons if matches(p, criteria)]
