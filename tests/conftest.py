from __future__ import annotations

from pathlib import Path

import pytest

DSMR5_TELEGRAM = "\r\n".join(
    [
        r"/ISk5\2MT382-1000",
        "",
        "1-3:0.2.8(50)",
        "0-0:1.0.0(101209113020W)",
        "0-0:96.1.1(4B384547303034303436333935353037)",
        "1-0:1.8.1(123456.789*kWh)",
        "1-0:1.8.2(123457.789*kWh)",
        "1-0:2.8.1(000012.345*kWh)",
        "1-0:2.8.2(000023.456*kWh)",
        "0-0:96.14.0(0002)",
        "1-0:1.7.0(01.193*kW)",
        "1-0:2.7.0(00.000*kW)",
        "0-0:96.7.21(00004)",
        "0-0:96.7.9(00002)",
        "1-0:99.97.0(2)(0-0:96.7.19)(101208152415W)(0000000240*s)(101208151004W)(0000000301*s)",
        "1-0:32.32.0(00002)",
        "1-0:32.36.0(00000)",
        "0-0:96.13.0(303132333435363738393A3B3C3D3E3F)",
        "0-1:24.1.0(003)",
        "0-1:96.1.0(3232323241424344313233343536373839)",
        "0-1:24.2.1(101209112500W)(12785.123*m3)",
        "!EF2F",
        "",
    ]
)


@pytest.fixture()
def dsmr5_telegram() -> str:
    return DSMR5_TELEGRAM


@pytest.fixture()
def telegram_file(tmp_path: Path) -> Path:
    path = tmp_path / "telegram.txt"
    path.write_bytes(DSMR5_TELEGRAM.encode("ascii"))
    return path
