"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple, Optional


class ReadingName(str, Enum):
    """Semantic quantities tracked in the reading store."""

    energy_consumed = "energy-consumed"
    energy_delivered = "energy-delivered"
    active_tariff = "active-tariff"
    instantaneous_import = "instantaneous-import"
    instantaneous_export = "instantaneous-export"
    gas_consumed = "gas-consumed"


class ReadingKey(NamedTuple):
    """Store key: a reading name plus an optional tariff discriminator."""

    name: ReadingName
    discriminator: Optional[str] = None

    def __str__(self) -> str:
        if self.discriminator is None:
            return self.name.value
        return f"{self.name.value}[{self.discriminator}]"


@dataclass(frozen=True, slots=True)
class Field:
    """A single object-identifier/value pair extracted from a telegram."""

    identifier: str
    value: str
