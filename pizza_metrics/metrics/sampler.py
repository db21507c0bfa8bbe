"""Host resource sampling."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True, slots=True)
class ResourceSample:
    cpu_usage_percent: float
    memory_usage_percent: float


class Sampler(Protocol):
    def sample(self) -> ResourceSample:
        """Return the current CPU and memory usage."""


class HostSampler:
    """Sample the local host through ``os``.

    CPU usage is the one-minute load average divided by the CPU count, memory
    usage is the share of physical pages not available. Both are percentages
    rounded to two decimals. Raises ``OSError`` where the platform does not
    expose these figures; the scheduler treats that as a skipped sample.
    """

    def sample(self) -> ResourceSample:
        return ResourceSample(
            cpu_usage_percent=self.cpu_usage_percent(),
            memory_usage_percent=self.memory_usage_percent(),
        )

    @staticmethod
    def cpu_usage_percent() -> float:
        try:
            load, _, _ = os.getloadavg()
        except AttributeError as exc:
            raise OSError("load average is not available on this platform") from exc
        cpus = os.cpu_count() or 1
        return round(load / cpus * 100, 2)

    @staticmethod
    def memory_usage_percent() -> float:
        try:
            total = os.sysconf("SC_PHYS_PAGES")
            available = os.sysconf("SC_AVPHYS_PAGES")
        except (AttributeError, ValueError) as exc:
            raise OSError("physical memory counters are not available on this platform") from exc
        if total <= 0:
            raise OSError("physical memory counters are not available on this platform")
        return round((total - available) / total * 100, 2)
