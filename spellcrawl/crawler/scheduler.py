"""
Batch scheduler that runs one fetch-and-check task per record under a fixed
concurrency cap.
"""

import asyncio
import logging
import math
import time
from typing import List, Optional, Sequence
from dataclasses import dataclass

from .analysis import RecordResult, analyze_text, DEFAULT_CONTEXT_WINDOW
from .fetcher import BaseFetcher, FetchError
from .records import Record
from .spelling import SpellingOracle
from ..utils.config import ConfigError
from ..utils.logger import get_record_logger
from ..utils.monitoring import SpellCrawlMonitor


@dataclass
class CrawlStats:
    """Statistics for a run."""
    start_time: float
    records_attempted: int = 0
    records_succeeded: int = 0
    records_failed: int = 0
    timeouts: int = 0
    batches: int = 0
    open_sessions: int = 0
    peak_open_sessions: int = 0
    total_fetch_time: float = 0.0

    @property
    def elapsed_time(self) -> float:
        return time.time() - self.start_time

    @property
    def average_fetch_time(self) -> float:
        return self.total_fetch_time / self.records_succeeded if self.records_succeeded else 0.0


@dataclass(frozen=True)
class RecordFailure:
    """A record that produced no result, and why."""
    label: str
    target: str
    reason: str


class BatchScheduler:
    """
    Runs one task per record in consecutive batches of ``batch_size``.

    Every task in a batch runs concurrently with its own fetch session; the
    next batch starts only once all of them have settled and released their
    sessions. Record-level failures are logged and turned into ``None``
    outcomes, they never escape ``run``.
    """

    def __init__(self, fetcher: BaseFetcher, oracle: SpellingOracle,
                 batch_size: int = 5, fetch_timeout: float = 30.0,
                 context_window: int = DEFAULT_CONTEXT_WINDOW,
                 monitor: Optional[SpellCrawlMonitor] = None):
        if not isinstance(batch_size, int) or batch_size < 1:
            raise ConfigError(f"batch_size must be a positive integer, got {batch_size!r}")
        if fetch_timeout <= 0:
            raise ConfigError(f"fetch_timeout must be positive, got {fetch_timeout!r}")

        self.fetcher = fetcher
        self.oracle = oracle
        self.batch_size = batch_size
        self.fetch_timeout = fetch_timeout
        self.context_window = context_window
        self.monitor = monitor or SpellCrawlMonitor()
        self.logger = logging.getLogger(__name__)

        self.stats = CrawlStats(start_time=time.time())
        self.failures: List[RecordFailure] = []

    def batches(self, records: Sequence[Record]) -> List[Sequence[Record]]:
        """Split records into consecutive batches; the last one may be smaller."""
        return [
            records[start:start + self.batch_size]
            for start in range(0, len(records), self.batch_size)
        ]

    async def run(self, records: Sequence[Record]) -> List[Optional[RecordResult]]:
        """
        Process every record.

        Args:
            records: Records in input order

        Returns:
            One outcome per record, in input order: a RecordResult, or None if
            the record failed
        """
        self.stats = CrawlStats(start_time=time.time())
        self.failures = []

        batches = self.batches(records)
        total_batches = math.ceil(len(records) / self.batch_size)
        self.logger.info(
            f"Processing {len(records)} records in {total_batches} batches of up to {self.batch_size}"
        )

        outcomes: List[Optional[RecordResult]] = []
        for batch_number, batch in enumerate(batches, start=1):
            self.logger.info(f"Starting batch {batch_number}/{total_batches} ({len(batch)} records)")
            outcomes.extend(await self._run_batch(batch))
            self.stats.batches += 1

        self._log_final_stats()
        return outcomes

    async def _run_batch(self, batch: Sequence[Record]) -> List[Optional[RecordResult]]:
        """Run a batch concurrently and reassemble outcomes by position."""
        results = await asyncio.gather(
            *(self._process_record(record) for record in batch),
            return_exceptions=True
        )

        outcomes: List[Optional[RecordResult]] = []
        for record, result in zip(batch, results):
            if isinstance(result, BaseException):
                self._record_failure(record, f"Unexpected error: {result}", 'unexpected')
                outcomes.append(None)
            else:
                outcomes.append(result)
        return outcomes

    async def _process_record(self, record: Record) -> Optional[RecordResult]:
        """Fetch, check and analyze a single record."""
        log = get_record_logger(__name__, record.label, record.target)
        self.stats.records_attempted += 1
        log.info(f"Processing {record.target}")

        try:
            async with self.fetcher.session() as session:
                self._session_opened()
                try:
                    fetch_result = await asyncio.wait_for(
                        session.fetch(record.target), timeout=self.fetch_timeout
                    )
                finally:
                    self._session_closed()

            spans = self.oracle.check(fetch_result.text)
            result = analyze_text(record.label, record.target, fetch_result.text,
                                  spans, self.context_window)

        except asyncio.TimeoutError:
            self.stats.timeouts += 1
            self._record_failure(record, f"Timed out after {self.fetch_timeout}s", 'timeout')
            return None
        except FetchError as e:
            self._record_failure(record, str(e), 'fetch')
            return None
        except Exception as e:
            log.debug("Record processing traceback", exc_info=True)
            self._record_failure(record, f"Unexpected error: {e}", 'unexpected')
            return None

        self.stats.records_succeeded += 1
        self.stats.total_fetch_time += fetch_result.fetch_time
        self.monitor.record_checked(record.target, fetch_result.fetch_time, result.occurrence_count)
        log.info(f"Found {result.occurrence_count} misspellings ({len(result.misspellings)} distinct words)")
        return result

    def _session_opened(self):
        self.stats.open_sessions += 1
        self.stats.peak_open_sessions = max(self.stats.peak_open_sessions, self.stats.open_sessions)
        self.monitor.session_opened()

    def _session_closed(self):
        self.stats.open_sessions -= 1
        self.monitor.session_closed()

    def _record_failure(self, record: Record, reason: str, error_type: str):
        self.stats.records_failed += 1
        self.failures.append(RecordFailure(record.label, record.target, reason))
        self.monitor.record_error(error_type)
        get_record_logger(__name__, record.label, record.target).error(
            f"Failed to process {record.target}: {reason}"
        )

    def _log_final_stats(self):
        """Log final run statistics."""
        self.logger.info("=== CRAWL COMPLETED ===")
        self.logger.info(f"Records attempted: {self.stats.records_attempted}")
        self.logger.info(f"Records succeeded: {self.stats.records_succeeded}")
        self.logger.info(f"Records failed: {self.stats.records_failed} ({self.stats.timeouts} timeouts)")
        self.logger.info(f"Batches: {self.stats.batches}")
        self.logger.info(f"Total time: {self.stats.elapsed_time:.2f} seconds")
        self.logger.info(f"Average fetch time: {self.stats.average_fetch_time:.2f}s")
        self.logger.info(f"Fetcher stats: {self.fetcher.get_stats()}")
        self.logger.debug(f"Metrics summary: {self.monitor.get_summary()}")

    def get_stats(self) -> dict:
        """Get run statistics."""
        return {
            'records_attempted': self.stats.records_attempted,
            'records_succeeded': self.stats.records_succeeded,
            'records_failed': self.stats.records_failed,
            'timeouts': self.stats.timeouts,
            'batches': self.stats.batches,
            'peak_open_sessions': self.stats.peak_open_sessions,
            'elapsed_time': self.stats.elapsed_time,
            'average_fetch_time': self.stats.average_fetch_time,
        }
