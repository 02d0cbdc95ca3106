"""Stage timing for prover logs."""

import logging
import time
from contextlib import contextmanager
from typing import Iterator

logger = logging.getLogger("stark_engine.timing")


@contextmanager
def timed(label: str) -> Iterator[None]:
    """Log the wall-clock duration of the enclosed block at DEBUG."""
    start = time.perf_counter()
    try:
        yield
    finally:
        logger.debug(f"{label}: {(time.perf_counter() - start) * 1000:.1f} ms")
