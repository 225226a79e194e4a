"""Unit tests for field routing and strict value parsing."""

from __future__ import annotations

import logging

import pytest

from datastore.reading_store import ReadingStore
from models.records import Field, ReadingKey, ReadingName
from services.extractor import FieldExtractor
from services.router import (
    ROUTING_TABLE,
    SKIP_SET,
    FieldRouter,
    ParseError,
    RoutedUpdate,
    Skipped,
    Unrecognized,
    UnrecognizedFieldError,
    UnrecognizedPolicy,
    parse_decimal,
)


@pytest.fixture()
def store() -> ReadingStore:
    return ReadingStore()


@pytest.fixture()
def router(store: ReadingStore) -> FieldRouter:
    return FieldRouter(store)


def test_routing_table_matches_documented_readings() -> None:
    assert ROUTING_TABLE == {
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
    assert not SKIP_SET & ROUTING_TABLE.keys()


@pytest.mark.parametrize("identifier", sorted(ROUTING_TABLE))
def test_synthetic_line_routes_to_documented_reading(identifier: str, store: ReadingStore) -> None:
    router = FieldRouter(store)
    [field] = FieldExtractor().extract(f"{identifier}(0042.125)")

    outcome = router.route(field)

    key = ROUTING_TABLE[identifier]
    assert outcome == RoutedUpdate(identifier=identifier, key=key, value=42.125)
    assert store.get(key.name, key.discriminator) == 42.125


@pytest.mark.parametrize("identifier", sorted(SKIP_SET))
@pytest.mark.parametrize("value", ["12.5", "not-a-number", ""])
def test_skip_set_never_alters_store(identifier: str, value: str, store: ReadingStore) -> None:
    router = FieldRouter(store)

    outcome = router.route(Field(identifier, value))

    assert outcome == Skipped(identifier=identifier)
    assert store.snapshot() == {}


def test_parse_error_leaves_prior_value(store: ReadingStore, router: FieldRouter, caplog) -> None:
    store.set(ReadingName.instantaneous_import, None, 1.25)

    with caplog.at_level(logging.WARNING):
        outcome = router.route(Field("1-0:1.7.0", "abc"))

    assert outcome == ParseError(identifier="1-0:1.7.0", raw_value="abc", reason="invalid decimal")
    assert store.get(ReadingName.instantaneous_import) == 1.25
    [record] = [r for r in caplog.records if r.name == "services.router"]
    assert getattr(record, "identifier") == "1-0:1.7.0"
    assert getattr(record, "raw_value") == "'abc'"


def test_unrecognized_identifier_is_logged_and_ignored(
    store: ReadingStore, router: FieldRouter, caplog
) -> None:
    with caplog.at_level(logging.WARNING):
        outcome = router.route(Field("9-9:9.9.9", "1"))

    assert outcome == Unrecognized(identifier="9-9:9.9.9", raw_value="1")
    assert store.snapshot() == {}
    assert any("unrecognized" in record.getMessage() for record in caplog.records)


def test_three_phase_instantaneous_fields_are_skipped_quietly(
    store: ReadingStore, router: FieldRouter, caplog
) -> None:
    text = "\n".join(
        [
            "1-0:32.7.0(230.1*V)",
            "1-0:52.7.0(229.8*V)",
            "1-0:72.7.0(231.0*V)",
            "1-0:31.7.0(002*A)",
            "1-0:51.7.0(001*A)",
            "1-0:71.7.0(000*A)",
            "1-0:21.7.0(00.401*kW)",
            "1-0:41.7.0(00.211*kW)",
            "1-0:61.7.0(00.000*kW)",
            "1-0:22.7.0(00.000*kW)",
            "1-0:42.7.0(00.000*kW)",
            "1-0:62.7.0(00.125*kW)",
        ]
    )

    with caplog.at_level(logging.WARNING):
        outcomes = [router.route(field) for field in FieldExtractor().extract(text)]

    assert len(outcomes) == 12
    assert all(isinstance(outcome, Skipped) for outcome in outcomes)
    assert store.snapshot() == {}
    assert not [r for r in caplog.records if r.levelno >= logging.WARNING]


def test_unrecognized_identifier_is_fatal_under_fatal_policy(store: ReadingStore) -> None:
    router = FieldRouter(store, policy=UnrecognizedPolicy.fatal)

    with pytest.raises(UnrecognizedFieldError) as excinfo:
        router.route(Field("9-9:9.9.9", "1"))

    assert excinfo.value.identifier == "9-9:9.9.9"
    assert store.snapshot() == {}


def test_policy_accepts_plain_strings(store: ReadingStore) -> None:
    assert FieldRouter(store, policy="fatal").policy is UnrecognizedPolicy.fatal  # type: ignore[arg-type]


def test_custom_routing_table_and_skip_set(store: ReadingStore) -> None:
    router = FieldRouter(
        store,
        routing_table={"1-0:32.7.0": ReadingKey(ReadingName.instantaneous_import, "L1")},
        skip_set=frozenset({"1-0:1.8.1"}),
    )

    assert isinstance(router.route(Field("1-0:1.8.1", "1.0")), Skipped)
    assert isinstance(router.route(Field("1-0:1.8.2", "1.0")), Unrecognized)
    router.route(Field("1-0:32.7.0", "230.1"))
    assert store.get(ReadingName.instantaneous_import, "L1") == 230.1


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("123.456", 123.456),
        ("0002", 2.0),
        ("-0012.340", -12.34),
        ("+1", 1.0),
        ("5.", 5.0),
        (".5", 0.5),
    ],
)
def test_parse_decimal_accepts_plain_literals(raw: str, expected: float) -> None:
    assert parse_decimal(raw) == expected


@pytest.mark.parametrize(
    "raw",
    ["", "abc", "1e5", "0x1F", "1,000", "1.2.3", "inf", "nan", " 1", "1 ", "+-1", "."],
)
def test_parse_decimal_rejects_everything_else(raw: str) -> None:
    with pytest.raises(ValueError):
        parse_decimal(raw)
