import logging
from collections import OrderedDict
from typing import Callable, Generic, Hashable, TypeVar

from ..constants.metrics import Constants
from ..metrics.statsd_client import statsd

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class PendingWriteQueue(Generic[K, V]):
    """Latest-value-wins write buffer with at-least-once flush.

    An entry leaves the queue only after its writer call returned; a failed write stays
    queued for the next flush unless a newer value for the same key replaced it.
    """

    def __init__(self, writer: Callable[[K, V], None]):
        self.writer = writer
        self._pending: "OrderedDict[K, V]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._pending)

    def put(self, key: K, value: V) -> None:
        self._pending[key] = value
        self._pending.move_to_end(key)

    def flush(self) -> int:
        written = 0
        for key in list(self._pending):
            value = self._pending[key]
            try:
                self.writer(key, value)
            except Exception as e:
                logger.warning(f"Pending write for {key!r} failed, keeping it queued: {str(e)}")
                statsd.increment(Constants.Metric.DRAFT_WRITE_FAILED)
                continue
            # A newer value may have been queued while writing
            if self._pending.get(key) is value:
                del self._pending[key]
            written += 1
        return written
