"""Fixed-size row buffering for batched spreadsheet writes."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

ROWS_PER_REQUEST_DEFAULT = 1000

RowT = TypeVar("RowT")


class RowBatcher(Generic[RowT]):
    """Accumulates rows and hands them to ``flush`` in batches.

    A batch is sent as soon as the buffer holds ``rows_per_request`` rows;
    ``finalize()`` sends whatever is left. The threshold trades buffering
    memory against Google's requests-per-second quota.

    Errors raised by ``flush`` are not caught. The buffer keeps the rows of
    the failed batch, so the caller sees exactly what was not written.

    Usage:
        batcher = RowBatcher(lambda rows: client.append_cells(sid, 0, rows), 500)
        for row in rows:
            batcher.add_row(row)
        batcher.finalize()
    """

    def __init__(
        self,
        flush: Callable[[list[RowT]], Any],
        rows_per_request: int = ROWS_PER_REQUEST_DEFAULT,
    ) -> None:
        """Initialize the batcher.

        Args:
            flush: Called with a list of buffered rows for every batch.
            rows_per_request: Maximum rows per batch, at least 1.

        Raises:
            ValueError: If rows_per_request is less than 1.
        """
        rows_per_request = int(rows_per_request)
        if rows_per_request < 1:
            raise ValueError(f"rows_per_request must be >= 1, got {rows_per_request}")

        self._flush = flush
        self.rows_per_request = rows_per_request
        self._rows: list[RowT] = []
        self.flush_count = 0
        self.rows_flushed = 0

    @property
    def pending(self) -> int:
        """Number of buffered rows not yet sent."""
        return len(self._rows)

    def add_row(self, row: RowT) -> None:
        """Buffer a row, sending the batch when the buffer is full."""
        self._rows.append(row)
        if len(self._rows) >= self.rows_per_request:
            self._send()

    def finalize(self) -> None:
        """Send the remaining rows, if any."""
        if self._rows:
            self._send()

    def _send(self) -> None:
        rows = self._rows
        logger.debug(f"Flushing batch of {len(rows)} rows")
        self._flush(list(rows))

        self._rows = []
        self.flush_count += 1
        self.rows_flushed += len(rows)
