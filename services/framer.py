"""Groups a stream of text lines into complete telegrams."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

logger = logging.getLogger(__name__)

START_MARKER = re.compile(r"^/")
END_MARKER = re.compile(r"^!")


class FramerState(str, Enum):
    seeking_start = "seeking_start"
    accumulating = "accumulating"


@dataclass(frozen=True)
class Telegram:
    """One complete meter transmission, start line through end line."""

    lines: tuple[str, ...]

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    @property
    def header(self) -> str:
        return self.lines[0]


class TelegramFramer:
    """State machine that emits a telegram once its end marker arrives.

    A start marker seen while accumulating drops the partial buffer and
    restarts framing from that line. Every line is normalized the same way:
    trailing CR/LF are stripped and lines are joined by a single newline.
    """

    def __init__(self) -> None:
        self.state = FramerState.seeking_start
        self.discontinuities = 0
        self._buffer: List[str] = []

    def feed(self, line: str) -> Optional[Telegram]:
        line = line.rstrip("\r\n")

        if self.state is FramerState.seeking_start:
            if START_MARKER.match(line):
                self._buffer = [line]
                self.state = FramerState.accumulating
            return None

        if START_MARKER.match(line):
            self.discontinuities += 1
            logger.warning(
                "Start marker before end marker; discarding partial telegram",
                extra={"line_count": len(self._buffer), "reason": "framing discontinuity"},
            )
            self._buffer = [line]
            return None

        self._buffer.append(line)
        if END_MARKER.match(line):
            telegram = Telegram(lines=tuple(self._buffer))
            self.reset()
            return telegram
        return None

    def reset(self) -> None:
        self._buffer = []
        self.state = FramerState.seeking_start
