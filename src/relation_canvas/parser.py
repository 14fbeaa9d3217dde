"""YAML workspace parser for relation-canvas.

Supports two formats:
1. Full workspace YAML (``workspace:`` root holding persons, connections,
   groups, collapsed branches, settings and view), as written by
   ``workspace_to_yaml``
2. Simplified roster format (flat list of persons, each naming who it
   ``connects`` to)
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from .models import Connection, Group, Person, Workspace

logger = logging.getLogger(__name__)


def parse_yaml(yaml_str: str) -> Workspace:
    """Parse a YAML string into a Workspace model."""
    data = yaml.safe_load(yaml_str)
    if not data:
        raise ValueError("Empty YAML input")
    if not isinstance(data, dict):
        raise ValueError(f"Expected a YAML mapping, got {type(data).__name__}")

    if "workspace" in data:
        return Workspace.model_validate(data["workspace"])

    return _parse_simple_format(data)


def parse_file(path: str) -> Workspace:
    """Parse a YAML file into a Workspace model."""
    content = Path(path).read_text()
    return parse_yaml(content)


def _parse_simple_format(data: dict) -> Workspace:
    """Parse the simplified roster format.

    Example:
        persons:
          - id: ceo
            name: Dana Reyes
            position: Chief Executive
            score: 1
            connects: [cto, cfo]
          - id: cto
            name: Sam Ortiz
            frame_color: green
          - id: cfo
            name: Lee Park
        connections:
          - from: cto
            to: cfo
            style: dashed
        groups:
          - id: board
            name: Board
            x: -100
            y: -100

    Connections are deduplicated per unordered pair.  Self-loops and
    references to unknown persons are skipped with a warning.
    """
    persons: list[Person] = []
    pending: list[dict] = []
    for i, person_data in enumerate(data.get("persons", [])):
        person_data = dict(person_data)
        targets = person_data.pop("connects", []) or []
        person_data.setdefault("id", f"person-{i + 1}")
        person_data.setdefault("name", person_data["id"])
        persons.append(Person(**person_data))
        for target in targets:
            pending.append({"from": person_data["id"], "to": target})

    pending.extend(data.get("connections", []) or [])

    known = {p.id for p in persons}
    connections: list[Connection] = []
    for i, conn_data in enumerate(pending):
        conn = _parse_connection(conn_data, i)
        if conn.from_id == conn.to_id:
            logger.warning(f"Skipping self-connection on '{conn.from_id}'")
            continue
        if conn.from_id not in known or conn.to_id not in known:
            logger.warning(f"Skipping connection {conn.from_id} -> {conn.to_id}: unknown person")
            continue
        if any(c.connects(conn.from_id, conn.to_id) for c in connections):
            logger.debug(f"Duplicate connection {conn.from_id} -> {conn.to_id} ignored")
            continue
        connections.append(conn)

    groups = [Group(**g) for g in data.get("groups", []) or []]
    return Workspace(persons=persons, connections=connections, groups=groups)


def _parse_connection(data: dict, index: int) -> Connection:
    """Parse a single connection; ``from``/``to`` are accepted for ``from_id``/``to_id``."""
    data = dict(data)
    if "from" in data:
        data["from_id"] = data.pop("from")
    if "to" in data:
        data["to_id"] = data.pop("to")
    data.setdefault("id", f"conn-{index + 1}")
    return Connection(**data)


def workspace_to_yaml(workspace: Workspace) -> str:
    """Serialize a Workspace model back to YAML (full format)."""
    data = {"workspace": workspace.model_dump(mode="json", exclude_none=True)}
    return yaml.dump(data, default_flow_style=False, sort_keys=False)
