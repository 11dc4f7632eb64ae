"""Wall-clock timing of pipeline stages.

    timer(name, sink)   context manager; reports (name, seconds) to ``sink``
                        or prints "name: 0.012 s" when no sink is given
    StageTimings        per-run accumulator; logs each stage at DEBUG

Timing uses time.perf_counter(); elapsed time is reported even when the timed
block raises.
"""

import logging
import time
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, Optional

TimingSink = Callable[[str, float], None]


@contextmanager
def timer(name: str, sink: Optional[TimingSink] = None) -> Iterator[None]:
    """Time the enclosed block.

    Examples
    --------
    >>> with timer("compose"):
    ...     image = compose(r, g, b)
    compose: 0.012 s
    """
    t0 = time.perf_counter()
    try:
        yield
    finally:
        seconds = time.perf_counter() - t0
        if sink is None:
            print(f"{name}: {seconds:.3f} s")
        else:
            sink(name, seconds)


class StageTimings:
    """Named stage durations for one run, in first-seen order.

    Repeated stage names accumulate.

    Examples
    --------
    >>> timings = StageTimings(logger)
    >>> with timings.stage("load"):
    ...     image = fs.load_image(path)
    >>> timings.as_dict()
    {'load': 0.004}
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._seconds: Dict[str, float] = {}
        self._logger = logger

    def _add(self, name: str, seconds: float) -> None:
        self._seconds[name] = self._seconds.get(name, 0.0) + seconds
        if self._logger is not None:
            self._logger.debug(f"Stage {name} took {seconds:.3f} s")

    def stage(self, name: str):
        return timer(name, sink=self._add)

    def as_dict(self) -> Dict[str, float]:
        return dict(self._seconds)

    @property
    def total(self) -> float:
        return sum(self._seconds.values())
