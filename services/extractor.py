"""Syntactic pass turning telegram text into identifier/value fields."""

from __future__ import annotations

import re
from typing import Dict, List, Mapping, Optional

from models.records import Field

# DSMR emits media groups 0 and 1 only; other OBIS media groups are still
# extracted so the router can report them as unrecognized.
IDENTIFIER_PATTERN = r"\d+-\d+:\d+\.\d+\.\d+"

# An identifier at the start of a line followed by one or more parenthesized
# groups. Groups may continue on following lines, as DSMR 2.2 meters put the
# gas reading for 0-1:24.3.0 on the line after its header groups.
FIELD_PATTERN = re.compile(
    rf"^[ \t]*(?P<identifier>{IDENTIFIER_PATTERN})(?P<groups>(?:\s*\([^()\n]*\))+)",
    re.MULTILINE,
)
GROUP_PATTERN = re.compile(r"\(([^()\n]*)\)")

# Identifiers whose reading is not in the first group, e.g.
# 0-1:24.2.1(101209112500W)(12785.123*m3) carries a timestamp first.
DEFAULT_VALUE_GROUPS: Dict[str, int] = {
    "0-1:24.2.1": -1,
    "0-1:24.3.0": -1,
}


class FieldExtractor:
    """Extracts fields without unit conversion or bounds checking."""

    def __init__(self, value_groups: Optional[Mapping[str, int]] = None) -> None:
        self.value_groups: Dict[str, int] = dict(DEFAULT_VALUE_GROUPS)
        if value_groups:
            self.value_groups.update(value_groups)

    def extract(self, telegram_text: str) -> List[Field]:
        fields: List[Field] = []
        for match in FIELD_PATTERN.finditer(telegram_text):
            identifier = match.group("identifier")
            groups = GROUP_PATTERN.findall(match.group("groups"))
            index = self.value_groups.get(identifier, 0)
            try:
                raw = groups[index]
            except IndexError:
                raw = groups[-1]
            fields.append(Field(identifier=identifier, value=strip_unit(raw)))
        return fields


def strip_unit(raw: str) -> str:
    """Drop a ``*unit`` suffix, e.g. ``123.456*kWh`` -> ``123.456``."""
    return raw.split("*", 1)[0]
