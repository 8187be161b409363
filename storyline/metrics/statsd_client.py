import logging
import time
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

from ..constants.metrics import Constants

logger = logging.getLogger("metrics")

Tags = Optional[Dict[str, str]]


class StatsdClient:
    """Writes StatsD-style lines to the ``metrics`` logger for the log shipper to pick up."""

    def __init__(self, prefix: str = Constants.Metric.PREFIX):
        self.prefix = prefix
        logger.info(f"Initialized StatsdClient with prefix: {prefix}")

    def timing(self, metric: str, value_ms: float, tags: Tags = None):
        self._emit("TIMING", metric, f"{value_ms:.2f}ms", tags)

    def increment(self, metric: str, value: int = 1, tags: Tags = None):
        self._emit("COUNT", metric, f"+{value}", tags)

    @contextmanager
    def timer(self, metric: str, tags: Tags = None) -> Iterator[None]:
        """Record the wall time of the ``with`` block, whether or not it raises."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.timing(metric, (time.perf_counter() - start) * 1000, tags)

    def _emit(self, kind: str, metric: str, value: str, tags: Tags) -> None:
        name = metric.replace("/", ".").replace("-", "_").replace(" ", "_")
        tag_str = "," + ",".join(f"{k}:{v}" for k, v in tags.items()) if tags else ""
        logger.info(f"STATSD {kind}: {self.prefix}.{name}{tag_str} {value}")


statsd = StatsdClient()
