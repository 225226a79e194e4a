"""Maps extracted fields onto semantic readings and writes them to the store."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional, Union

from datastore.reading_store import ReadingStore
from models.records import Field, ReadingKey, ReadingName

logger = logging.getLogger(__name__)

ROUTING_TABLE: Dict[str, ReadingKey] = {
    "1-0:1.8.1": ReadingKey(ReadingName.energy_consumed, "1"),
    "1-0:1.8.2": ReadingKey(ReadingName.energy_consumed, "2"),
    "1-0:2.8.1": ReadingKey(ReadingName.energy_delivered, "1"),
    "1-0:2.8.2": ReadingKey(ReadingName.energy_delivered, "2"),
    "0-0:96.14.0": ReadingKey(ReadingName.active_tariff),
    "1-0:1.7.0": ReadingKey(ReadingName.instantaneous_import),
    "1-0:2.7.0": ReadingKey(ReadingName.instantaneous_export),
    "0-1:24.3.0": ReadingKey(ReadingName.gas_consumed),
    "0-1:24.2.1": ReadingKey(ReadingName.gas_consumed),
}

SKIP_SET: FrozenSet[str] = frozenset(
    {
        # equipment identifiers and serial numbers
        "0-0:96.1.1",
        "0-0:96.1.4",
        "0-1:96.1.0",
        # device type and protocol version
        "0-1:24.1.0",
        "1-3:0.2.8",
        # telegram timestamp
        "0-0:1.0.0",
        # power failure counters and event log
        "0-0:96.7.21",
        "0-0:96.7.9",
        "1-0:99.97.0",
        "1-0:32.32.0",
        "1-0:52.32.0",
        "1-0:72.32.0",
        "1-0:32.36.0",
        "1-0:52.36.0",
        "1-0:72.36.0",
        # per-phase voltage, current and power
        "1-0:32.7.0",
        "1-0:52.7.0",
        "1-0:72.7.0",
        "1-0:31.7.0",
        "1-0:51.7.0",
        "1-0:71.7.0",
        "1-0:21.7.0",
        "1-0:41.7.0",
        "1-0:61.7.0",
        "1-0:22.7.0",
        "1-0:42.7.0",
        "1-0:62.7.0",
        # thresholds, breaker and valve positions
        "0-0:17.0.0",
        "0-0:96.3.10",
        "0-1:24.4.0",
        # text and numeric messages
        "0-0:96.13.0",
        "0-0:96.13.1",
    }
)

# Leading sign, digits, at most one decimal point. No exponents, hex,
# thousands separators, infinities or whitespace.
DECIMAL_PATTERN = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)")


class UnrecognizedPolicy(str, Enum):
    """What to do with an identifier that is neither routed nor skipped."""

    log = "log"
    fatal = "fatal"


class UnrecognizedFieldError(Exception):
    """Raised for an unknown identifier when the fatal policy is active."""

    def __init__(self, identifier: str, raw_value: str) -> None:
        super().__init__(f"Unrecognized object identifier {identifier!r} (value {raw_value!r}).")
        self.identifier = identifier
        self.raw_value = raw_value


@dataclass(frozen=True)
class RoutedUpdate:
    identifier: str
    key: ReadingKey
    value: float


@dataclass(frozen=True)
class Skipped:
    identifier: str


@dataclass(frozen=True)
class Unrecognized:
    identifier: str
    raw_value: str


@dataclass(frozen=True)
class ParseError:
    identifier: str
    raw_value: str
    reason: str


RouteOutcome = Union[RoutedUpdate, Skipped, Unrecognized, ParseError]


def parse_decimal(raw: str) -> float:
    """Strictly parse a plain decimal literal such as ``-0012.340``."""
    if not DECIMAL_PATTERN.fullmatch(raw):
        raise ValueError(f"Not a plain decimal literal: {raw!r}")
    return float(raw)


class FieldRouter:
    """Routes one field at a time; only successful parses touch the store."""

    def __init__(
        self,
        store: ReadingStore,
        policy: UnrecognizedPolicy = UnrecognizedPolicy.log,
        routing_table: Optional[Dict[str, ReadingKey]] = None,
        skip_set: Optional[FrozenSet[str]] = None,
    ) -> None:
        self.store = store
        self.policy = UnrecognizedPolicy(policy)
        self.routing_table = dict(ROUTING_TABLE if routing_table is None else routing_table)
        self.skip_set = SKIP_SET if skip_set is None else frozenset(skip_set)

    def route(self, field: Field) -> RouteOutcome:
        if field.identifier in self.skip_set:
            logger.debug("Skipping field", extra={"identifier": field.identifier})
            return Skipped(identifier=field.identifier)

        key = self.routing_table.get(field.identifier)
        if key is None:
            return self._unrecognized(field)

        try:
            value = parse_decimal(field.value)
        except ValueError:
            logger.warning(
                "Dropping field with unparsable value",
                extra={
                    "identifier": field.identifier,
                    "raw_value": repr(field.value),
                    "reason": "invalid decimal",
                },
            )
            return ParseError(
                identifier=field.identifier,
                raw_value=field.value,
                reason="invalid decimal",
            )

        self.store.set(key.name, key.discriminator, value)
        return RoutedUpdate(identifier=field.identifier, key=key, value=value)

    def _unrecognized(self, field: Field) -> Unrecognized:
        context = {
            "identifier": field.identifier,
            "raw_value": repr(field.value),
            "policy": self.policy.value,
        }
        if self.policy is UnrecognizedPolicy.fatal:
            logger.error("Unrecognized object identifier", extra=context)
            raise UnrecognizedFieldError(field.identifier, field.value)
        logger.warning("Ignoring unrecognized object identifier", extra=context)
        return Unrecognized(identifier=field.identifier, raw_value=field.value)
