"""Extract variables embedded in an item's free-text ``note`` field.

Two forms are recognised: ``{:variable:value}`` anywhere on a line and
``variable: value`` as a whole line. Scanning stops at the first line after
the first one that holds neither.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from .dates import date_from_raw
from .models import Item, Name
from .names import split_family_particle
from .vocabulary import ALL_VARIABLES, normalize_type, variable_kind

logger = logging.getLogger(__name__)

_INLINE = re.compile(r"\{:(?P<name>[A-Za-z][\w\-]*):\s*(?P<value>[^}]*)\}")
_LINE = re.compile(r"^\s*(?P<name>[A-Za-z][\w\-]*)\s*:\s*(?P<value>\S.*?)\s*$")


@dataclass
class Extraction:
    fields: List[Tuple[str, str]] = field(default_factory=list)
    remainder: str = ""


def _known(name: str) -> bool:
    return name == "type" or (name != "note" and name in ALL_VARIABLES)


def _line_fields(line: str) -> Tuple[List[Tuple[str, str]], str]:
    """Fields found on ``line`` and what is left of the line afterwards."""
    found = [
        (match.group("name"), match.group("value").strip())
        for match in _INLINE.finditer(line)
        if _known(match.group("name"))
    ]
    if found:
        rest = _INLINE.sub(lambda m: "" if _known(m.group("name")) else m.group(0), line)
        return found, rest.strip()
    match = _LINE.match(line)
    if match and _known(match.group("name")):
        return [(match.group("name"), match.group("value"))], ""
    return [], line


def extract(note: str) -> Extraction:
    """Split ``note`` into embedded fields and the remaining free text."""
    result = Extraction()
    lines = note.splitlines()
    kept: List[str] = []
    for index, line in enumerate(lines):
        found, rest = _line_fields(line)
        if not found:
            if index == 0:
                kept.append(line)
                continue
            kept.extend(lines[index:])
            break
        result.fields.extend(found)
        if rest:
            kept.append(rest)
    result.remainder = "\n".join(kept).strip()
    return result


def parse_cheater_name(value: str) -> Name:
    """``"Family || Given"`` or a single literal name."""
    if "||" in value:
        family, given = (part.strip() for part in value.split("||", 1))
        particle, family = split_family_particle(family)
        return Name(family=family or None, given=given or None, non_dropping_particle=particle)
    return Name(literal=value.strip())


def apply_note_fields(item: Item) -> Item:
    """Promote note-embedded variables into ``item`` following the override rules.

    Dates overwrite, names are appended, ``type`` always wins and ordinary
    variables only fill gaps.
    """
    note = item.variables.get("note")
    if not isinstance(note, str) or ":" not in note:
        return item
    extraction = extract(note)
    if not extraction.fields:
        return item

    variables: Dict[str, object] = dict(item.variables)
    item_type = item.type
    raw_type = item.raw_type
    for name, value in extraction.fields:
        if not value:
            continue
        if name == "type":
            item_type = normalize_type(value)
            raw_type = value
            continue
        kind = variable_kind(name)
        if kind == "date":
            variables[name] = date_from_raw(value)
        elif kind == "name":
            existing = list(variables.get(name) or [])
            existing.append(parse_cheater_name(value))
            variables[name] = existing
        elif variables.get(name) in (None, ""):
            variables[name] = value
    if extraction.remainder:
        variables["note"] = extraction.remainder
    else:
        variables.pop("note", None)
    logger.debug("Item %s: %d field(s) taken from note", item.id, len(extraction.fields))
    return Item(id=item.id, type=item_type, variables=variables, raw_type=raw_type)


__all__ = ["Extraction", "apply_note_fields", "extract", "parse_cheater_name"]
