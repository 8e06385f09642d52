"""
Timing Utilities for Latency Instrumentation

Logs how long each deep research stage takes. Total pipeline latency is the
sum of four sequential completion calls, so per-stage numbers are what
matter when a run is slow.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

logger = logging.getLogger(__name__)


def log_timing(node_name: str, action: str, duration_ms: Optional[float] = None):
    """Log a timing event in standard format."""
    if duration_ms is not None:
        logger.info("[TIMING] %s: %s — duration=%.0fms", node_name, action, duration_ms)
    else:
        logger.info("[TIMING] %s: %s", node_name, action)


class StepTimer:
    """
    Times the stages of one pipeline run.

    Usage:
        timer = StepTimer("deep_research")
        async with timer.async_step("draft"):
            await draft_stage(...)
        timer.summary()
    """

    def __init__(self, node_name: str):
        self.node_name = node_name
        self.steps: dict[str, float] = {}
        self.start_time = time.perf_counter()

    @asynccontextmanager
    async def async_step(self, step_name: str):
        """Time a single async step. Failed steps are logged as FAILED."""
        log_timing(self.node_name, f"{step_name} START")
        start = time.perf_counter()
        failed = False
        try:
            yield
        except BaseException:
            failed = True
            raise
        finally:
            duration_ms = (time.perf_counter() - start) * 1000
            self.steps[step_name] = duration_ms
            log_timing(self.node_name, f"{step_name} {'FAILED' if failed else 'END'}", duration_ms)

    def summary(self) -> float:
        """Log summary of all steps."""
        total_ms = (time.perf_counter() - self.start_time) * 1000
        log_timing(self.node_name, "TOTAL", total_ms)
        return total_ms
