"""
Batch executor.

Runs a per-item depot operation sequentially, in input order, and partitions
the outcome into successes and failures. With ``sync=True`` the first failure
propagates immediately; earlier successes stay committed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, Iterable, List, Optional, TypeVar

logger = logging.getLogger(__name__)

ItemT = TypeVar("ItemT")
RecordT = TypeVar("RecordT")


@dataclass
class OperationFailure(Generic[RecordT]):
    """A record whose operation failed, paired with the cause."""

    record: RecordT
    exception: BaseException
    message: str = field(init=False)

    def __post_init__(self) -> None:
        self.message = str(self.exception)


@dataclass
class BatchOutput(Generic[RecordT]):
    """Successes and failures of an operation applied to several items."""

    successes: List[RecordT] = field(default_factory=list)
    failures: List[OperationFailure[RecordT]] = field(default_factory=list)

    @property
    def successes_count(self) -> int:
        return len(self.successes)

    @property
    def failures_count(self) -> int:
        return len(self.failures)

    @property
    def operations_count(self) -> int:
        return self.successes_count + self.failures_count

    @property
    def failed(self) -> bool:
        return self.failures_count > 0

    @property
    def fully_failed(self) -> bool:
        return self.operations_count == self.failures_count


async def run_batch(
    items: Iterable[ItemT],
    operation: Callable[[ItemT], Awaitable[RecordT]],
    *,
    sync: bool = False,
    failure_record: Optional[Callable[[ItemT], RecordT]] = None,
) -> BatchOutput[RecordT]:
    """Apply ``operation`` to every item and collect the outcome.

    Args:
        items: Inputs, processed one at a time in order
        operation: Per-item coroutine function
        sync: Propagate the first failure instead of collecting it
        failure_record: Builds the record reported for a failed item (defaults to the item itself)

    Returns:
        Batch output with successes and failures in input order
    """
    output: BatchOutput[RecordT] = BatchOutput()
    for item in items:
        try:
            output.successes.append(await operation(item))
        except Exception as exc:
            if sync:
                raise
            record = failure_record(item) if failure_record is not None else item
            logger.warning(f"Batch item failed ({type(exc).__name__}): {exc}")
            output.failures.append(OperationFailure(record, exc))

    if output.failed:
        logger.info(f"Batch finished with {output.failures_count}/{output.operations_count} failures")
    return output
