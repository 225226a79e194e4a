"""Background decode task driving framer, extractor and router."""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from dataclasses import dataclass, field
from functools import lru_cache
from threading import Event, Lock
from typing import Dict, List, Optional

from datastore.reading_store import ReadingStore, build_default_store
from services.extractor import FieldExtractor
from services.framer import TelegramFramer
from services.router import (
    FieldRouter,
    ParseError,
    RouteOutcome,
    RoutedUpdate,
    Skipped,
    Unrecognized,
    UnrecognizedPolicy,
)
from settings import get_settings
from sources.line_source import LineSource, StreamError, build_default_source

logger = logging.getLogger(__name__)


@dataclass
class TelegramReport:
    """Every routing outcome produced by one telegram, in telegram order."""

    outcomes: List[RouteOutcome] = field(default_factory=list)

    @property
    def updates(self) -> List[RoutedUpdate]:
        return [outcome for outcome in self.outcomes if isinstance(outcome, RoutedUpdate)]

    @property
    def skipped(self) -> List[Skipped]:
        return [outcome for outcome in self.outcomes if isinstance(outcome, Skipped)]

    @property
    def parse_errors(self) -> List[ParseError]:
        return [outcome for outcome in self.outcomes if isinstance(outcome, ParseError)]

    @property
    def unrecognized(self) -> List[Unrecognized]:
        return [outcome for outcome in self.outcomes if isinstance(outcome, Unrecognized)]


@dataclass(frozen=True)
class DecoderStats:
    telegrams: int
    routed: int
    skipped: int
    parse_errors: int
    unrecognized: int
    discontinuities: int
    running: bool
    failure: Optional[str] = None


class DecoderService:
    """Owns the decode loop and the pipeline state for a single line source.

    Lines of one telegram are routed sequentially on the decode thread; the
    exporter only ever reads the store.
    """

    def __init__(
        self,
        source: LineSource,
        store: ReadingStore,
        router: Optional[FieldRouter] = None,
        framer: Optional[TelegramFramer] = None,
        extractor: Optional[FieldExtractor] = None,
        poll_interval: float = 5.0,
    ) -> None:
        self.source = source
        self.store = store
        self.router = router or FieldRouter(store)
        self.framer = framer or TelegramFramer()
        self.extractor = extractor or FieldExtractor()
        self.poll_interval = poll_interval
        self.executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="p1-decoder")
        self.failure: Optional[BaseException] = None
        self._future: Optional[Future[None]] = None
        self._stop = Event()
        self._state_lock = Lock()
        self._counts: Dict[str, int] = {
            "routed": 0,
            "skipped": 0,
            "parse_errors": 0,
            "unrecognized": 0,
        }

    def start(self) -> None:
        """Submit the decode loop unless it is already running."""
        with self._state_lock:
            if self._future is not None and not self._future.done():
                return
            self._stop.clear()
            self.failure = None
            self._future = self.executor.submit(self._run)

    def stop(self) -> None:
        """Ask the loop to finish the in-flight line and return."""
        self._stop.set()
        self.source.close()

    def wait(self, timeout: Optional[float] = None) -> bool:
        with self._state_lock:
            future = self._future
        if future is None:
            return True
        done, _ = wait_futures([future], timeout=timeout)
        return bool(done)

    def shutdown(self) -> None:
        self.stop()
        self.executor.shutdown(wait=False, cancel_futures=True)

    @property
    def running(self) -> bool:
        with self._state_lock:
            return self._future is not None and not self._future.done()

    def stats(self) -> DecoderStats:
        with self._state_lock:
            counts = dict(self._counts)
        return DecoderStats(
            telegrams=self.store.telegrams_processed,
            discontinuities=self.framer.discontinuities,
            running=self.running,
            failure=str(self.failure) if self.failure is not None else None,
            **counts,
        )

    def process_line(self, line: str) -> Optional[TelegramReport]:
        telegram = self.framer.feed(line)
        if telegram is None:
            return None
        return self.process_telegram(telegram.text)

    def process_telegram(self, text: str) -> TelegramReport:
        report = TelegramReport()
        for extracted in self.extractor.extract(text):
            report.outcomes.append(self.router.route(extracted))

        with self._state_lock:
            self._counts["routed"] += len(report.updates)
            self._counts["skipped"] += len(report.skipped)
            self._counts["parse_errors"] += len(report.parse_errors)
            self._counts["unrecognized"] += len(report.unrecognized)
        count = self.store.increment_telegrams()
        logger.debug(
            "Processed telegram",
            extra={"telegram_count": count, "line_count": text.count("\n") + 1},
        )
        return report

    def run_once(self) -> int:
        """Consume the source once, returning the number of telegrams processed."""
        processed = 0
        for line in self.source.lines():
            if self.process_line(line) is not None:
                processed += 1
            if self._stop.is_set():
                break
        return processed

    def _run(self) -> None:
        logger.info("Decoder started", extra={"source": self.source.name})
        try:
            while not self._stop.is_set():
                self.run_once()
                if not self.source.repeatable:
                    break
                self.framer.reset()
                self._stop.wait(self.poll_interval)
        except BaseException as exc:
            if isinstance(exc, StreamError) and self._stop.is_set():
                logger.info("Decoder stopped", extra={"source": self.source.name})
                return
            # Set before the future completes so wait() callers see it.
            self.failure = exc
            logger.error(
                "Decoder stopped on failure",
                exc_info=True,
                extra={"source": self.source.name, "reason": type(exc).__name__},
            )
            raise
        logger.info("Decoder finished", extra={"source": self.source.name})


@lru_cache
def build_default_decoder() -> DecoderService:
    """Factory that wires the decoder with the configured source and store."""
    settings = get_settings()
    store = build_default_store()
    router = FieldRouter(store, policy=UnrecognizedPolicy(settings.unrecognized_policy))
    return DecoderService(
        source=build_default_source(),
        store=store,
        router=router,
        poll_interval=settings.poll_interval,
    )
