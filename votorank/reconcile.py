"""
Media reference reconciliation.

Verifies every non-null candidate photo URL and repairs or retires the
broken ones. Work proceeds in fixed-size batches: all probes of a batch
run concurrently and the next batch starts only once the whole batch is
done, so at most ``batch_size`` requests are ever in flight.

Failures are isolated to one record. A run always finishes with RunStats.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, asdict
from typing import Callable, Dict, Iterator, List, Optional, Protocol, Sequence, Tuple

from .config import DEFAULT_BATCH_SIZE
from .errors import PersistenceFailure
from .logger import get_logger
from .prober import ProbeResult
from .repair import RepairOutcome, RepairStrategy, attempt_repair, default_strategies
from .schema import MediaReference, MediaState

logger = get_logger()


class MediaStore(Protocol):
    def load_media_references(
        self, party_id: Optional[str] = None, active_only: bool = True
    ) -> List[MediaReference]:
        ...

    def update_photo_url(self, candidate_id: str, url: Optional[str]) -> None:
        ...


@dataclass
class RunStats:
    checked: int = 0
    reachable: int = 0
    broken: int = 0
    repaired_by_strategy: Dict[str, int] = field(default_factory=dict)
    nulled: int = 0
    probe_errors: int = 0
    write_failures: int = 0
    writes: int = 0
    batches: int = 0
    cancelled: bool = False
    dry_run: bool = False

    @property
    def repaired(self) -> int:
        return sum(self.repaired_by_strategy.values())

    def to_dict(self) -> dict:
        data = asdict(self)
        data["repaired"] = self.repaired
        return data


def _chunks(items: Sequence[MediaReference], size: int) -> Iterator[Sequence[MediaReference]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


class MediaReconciler:
    """
    One reconciliation pass over a candidate population.

    Args:
        store: Repository with load_media_references / update_photo_url
        prober: Callable url -> ProbeResult (a Prober instance works)
        strategies: Repair strategies in priority order
        batch_size: Records per batch; also the concurrency cap
        batch_delay: Fixed pause between batches, in seconds
        dry_run: Probe and repair-check everything but write nothing
        cancel_event: When set, the run stops before starting the next batch
    """

    def __init__(
        self,
        store: MediaStore,
        prober: Callable[[str], ProbeResult],
        strategies: Optional[Sequence[RepairStrategy]] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_delay: float = 0.0,
        dry_run: bool = False,
        cancel_event: Optional[threading.Event] = None,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.store = store
        self.prober = prober
        self.strategies = list(strategies) if strategies is not None else default_strategies()
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.dry_run = dry_run
        self.cancel_event = cancel_event or threading.Event()

    def cancel(self):
        """Ask the run to stop once the in-flight batch has finished."""
        self.cancel_event.set()

    def run(self, party_id: Optional[str] = None, active_only: bool = True) -> RunStats:
        stats = RunStats(dry_run=self.dry_run)
        logger.reset_metrics()
        references = [
            ref for ref in self.store.load_media_references(party_id=party_id, active_only=active_only)
            if ref.url
        ]
        total_batches = (len(references) + self.batch_size - 1) // self.batch_size
        logger.info(
            "Starting media reconciliation",
            candidates=len(references),
            batch_size=self.batch_size,
            batches=total_batches,
            party_id=party_id,
            dry_run=self.dry_run,
        )

        with ThreadPoolExecutor(max_workers=self.batch_size, thread_name_prefix="probe") as pool:
            for index, batch in enumerate(_chunks(references, self.batch_size)):
                if self.cancel_event.is_set():
                    stats.cancelled = True
                    logger.warning(
                        "Reconciliation cancelled",
                        completed_batches=stats.batches,
                        remaining=len(references) - stats.checked,
                    )
                    break
                if index and self.batch_delay:
                    time.sleep(self.batch_delay)

                self._process_batch(pool, batch, stats)
                stats.batches += 1
                logger.info(
                    f"Checked {stats.checked} / {len(references)} ({stats.broken} broken)",
                    batch=index + 1,
                )

        logger.info("Media reconciliation finished", **stats.to_dict())
        logger.log_metrics_summary()
        return stats

    def _process_batch(
        self, pool: ThreadPoolExecutor, batch: Sequence[MediaReference], stats: RunStats
    ) -> None:
        broken: List[MediaReference] = []
        for ref, result in self._probe_all(pool, batch, stats):
            stats.checked += 1
            if result.reachable:
                ref.mark_verified()
                stats.reachable += 1
            else:
                ref.mark_broken()
                stats.broken += 1
                broken.append(ref)
                logger.debug(
                    "Broken media reference",
                    candidate_id=ref.candidate_id,
                    url=ref.url,
                    status=result.status,
                    content_type=result.content_type,
                    error=result.error,
                )

        for ref, outcome in self._repair_all(pool, broken, stats):
            if outcome is not None:
                ref.mark_repaired(outcome.url, outcome.strategy)
                logger.info(
                    "Repaired media reference",
                    candidate_id=ref.candidate_id,
                    full_name=ref.full_name,
                    strategy=outcome.strategy,
                )
            else:
                ref.mark_nulled()
                logger.info(
                    "No alternative found, clearing media reference",
                    candidate_id=ref.candidate_id,
                    full_name=ref.full_name,
                )
            if self._persist(ref, stats):
                if ref.state is MediaState.REPAIRED:
                    counts = stats.repaired_by_strategy
                    counts[ref.strategy] = counts.get(ref.strategy, 0) + 1
                else:
                    stats.nulled += 1

    def _probe_all(
        self, pool: ThreadPoolExecutor, batch: Sequence[MediaReference], stats: RunStats
    ) -> List[Tuple[MediaReference, ProbeResult]]:
        futures = [(ref, pool.submit(self.prober, ref.url)) for ref in batch]
        results = []
        for ref, future in futures:
            try:
                result = future.result()
            except Exception as e:
                stats.probe_errors += 1
                logger.error("Probe raised", candidate_id=ref.candidate_id, url=ref.url, error=str(e))
                result = ProbeResult(ref.url, False, 0, error=str(e))
            error_type = None
            if not result.reachable:
                error_type = f"HTTP_{result.status}" if result.status else "NetworkUnreachable"
            logger.record_probe(result.reachable, error_type)
            results.append((ref, result))
        return results

    def _repair_all(
        self, pool: ThreadPoolExecutor, broken: Sequence[MediaReference], stats: RunStats
    ) -> List[Tuple[MediaReference, Optional[RepairOutcome]]]:
        # Records repair concurrently; strategies within a record stay sequential
        futures = [
            (ref, pool.submit(attempt_repair, ref, self.prober, self.strategies))
            for ref in broken
        ]
        outcomes = []
        for ref, future in futures:
            try:
                outcome = future.result()
            except Exception as e:
                stats.probe_errors += 1
                logger.error("Repair attempt raised", candidate_id=ref.candidate_id, error=str(e))
                outcome = None
            outcomes.append((ref, outcome))
        return outcomes

    def _persist(self, ref: MediaReference, stats: RunStats) -> bool:
        if self.dry_run:
            return True
        try:
            self.store.update_photo_url(ref.candidate_id, ref.url)
        except PersistenceFailure as e:
            stats.write_failures += 1
            logger.record_error("PersistenceFailure")
            logger.error("Failed to persist media reference", candidate_id=ref.candidate_id, error=str(e))
            return False
        stats.writes += 1
        return True
