"""Line sources feeding the decoder: a live serial port or a replayed capture."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from functools import lru_cache
from pathlib import Path
from threading import Event, Lock
from typing import Iterator, Optional

import serial

from settings import get_settings

logger = logging.getLogger(__name__)

PARITIES = {
    "N": serial.PARITY_NONE,
    "E": serial.PARITY_EVEN,
    "O": serial.PARITY_ODD,
    "M": serial.PARITY_MARK,
    "S": serial.PARITY_SPACE,
}

BYTE_SIZES = {
    5: serial.FIVEBITS,
    6: serial.SIXBITS,
    7: serial.SEVENBITS,
    8: serial.EIGHTBITS,
}


class StreamError(Exception):
    """The underlying stream failed or closed unexpectedly."""


class LineSource(ABC):
    """Produces ordered text lines with line endings stripped.

    ``lines()`` blocks until a line is available and raises ``StreamError``
    on I/O failure. Repeatable sources deliver whole captures per pass and
    may be iterated again after a poll delay.
    """

    repeatable: bool = False

    @property
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    def lines(self) -> Iterator[str]: ...

    def close(self) -> None:
        """Release the underlying stream, unblocking a pending read."""


class FileLineSource(LineSource):
    """Replays a captured telegram file, re-reading it on every pass."""

    repeatable = True

    def __init__(self, path: Path, encoding: str = "ascii") -> None:
        self.path = Path(path)
        self.encoding = encoding

    @property
    def name(self) -> str:
        return str(self.path)

    def lines(self) -> Iterator[str]:
        try:
            with self.path.open("r", encoding=self.encoding, errors="replace", newline="") as handle:
                for line in handle:
                    yield line.rstrip("\r\n")
        except OSError as exc:
            raise StreamError(f"Could not read telegram file {self.path}: {exc}") from exc


class SerialLineSource(LineSource):
    """Reads P1 lines from a serial device, blocking on each read."""

    def __init__(
        self,
        device: str,
        baud_rate: int = 115200,
        parity: str = "N",
        byte_size: int = 8,
    ) -> None:
        if parity not in PARITIES:
            raise ValueError(f"Unsupported parity {parity!r}.")
        if byte_size not in BYTE_SIZES:
            raise ValueError(f"Unsupported byte size {byte_size!r}.")
        self.device = device
        self.baud_rate = baud_rate
        self.parity = parity
        self.byte_size = byte_size
        self._port: Optional[serial.Serial] = None
        self._lock = Lock()
        self._closed = Event()

    @property
    def name(self) -> str:
        return self.device

    def _open(self) -> serial.Serial:
        try:
            port = serial.Serial(
                port=self.device,
                baudrate=self.baud_rate,
                parity=PARITIES[self.parity],
                bytesize=BYTE_SIZES[self.byte_size],
                stopbits=serial.STOPBITS_ONE,
                timeout=None,
            )
        except (serial.SerialException, ValueError) as exc:
            raise StreamError(f"Could not open serial device {self.device}: {exc}") from exc
        with self._lock:
            self._closed.clear()
            self._port = port
        logger.info(
            "Opened serial device",
            extra={"source": f"{self.device}@{self.baud_rate}/{self.byte_size}{self.parity}1"},
        )
        return port

    def lines(self) -> Iterator[str]:
        port = self._open()
        try:
            while True:
                try:
                    raw = port.readline()
                except (serial.SerialException, OSError) as exc:
                    if self._closed.is_set():
                        raise StreamError(f"Serial device {self.device} was closed.") from exc
                    raise StreamError(f"Read from {self.device} failed: {exc}") from exc
                except TypeError as exc:
                    # pyserial reads from a None fd once close() ran on another thread.
                    if not self._closed.is_set():
                        raise
                    raise StreamError(f"Serial device {self.device} was closed.") from exc
                if self._closed.is_set():
                    raise StreamError(f"Serial device {self.device} was closed.")
                if not raw:
                    raise StreamError(f"Serial device {self.device} closed the stream.")
                yield raw.decode("ascii", errors="replace").rstrip("\r\n")
        finally:
            self.close()

    def close(self) -> None:
        self._closed.set()
        with self._lock:
            port, self._port = self._port, None
        if port is not None and port.is_open:
            port.cancel_read()
            port.close()


@lru_cache
def build_default_source(path: Optional[str] = None) -> LineSource:
    settings = get_settings()
    source_file = settings.source_file if path is None else path
    if source_file:
        return FileLineSource(Path(source_file))
    return SerialLineSource(
        device=settings.serial_device,
        baud_rate=settings.baud_rate,
        parity=settings.parity,
        byte_size=settings.byte_size,
    )
