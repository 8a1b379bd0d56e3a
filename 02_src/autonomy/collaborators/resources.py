"""Resource gauges sampled by the scheduler's health monitor."""

from pathlib import Path
from typing import Callable, Protocol

import psutil

from ..config import DATA_DIR
from ..models import ResourceSnapshot


class IResourceGauges(Protocol):
    """Percent readings of the resources the system depends on."""

    def snapshot(self) -> ResourceSnapshot:
        """Read every gauge."""
        ...


class ResourceGauges:
    """psutil-backed gauges plus an optional external quota reading."""

    def __init__(
        self,
        storage_path: str | Path = DATA_DIR,
        external_quota: Callable[[], float] | None = None,
    ):
        self._storage_path = str(storage_path)
        self._external_quota = external_quota

    def cpu_usage(self) -> float:
        # Non-blocking: compares against the previous call.
        return float(psutil.cpu_percent(interval=None))

    def memory_usage(self) -> float:
        return float(psutil.virtual_memory().percent)

    def storage_health(self) -> float:
        """Disk usage of the data directory's volume, in percent."""
        return float(psutil.disk_usage(self._storage_path).percent)

    def external_quota_usage(self) -> float:
        if self._external_quota is None:
            return 0.0
        return float(self._external_quota())

    def snapshot(self) -> ResourceSnapshot:
        return ResourceSnapshot(
            cpu=self.cpu_usage(),
            memory=self.memory_usage(),
            storage=self.storage_health(),
            external_quota=self.external_quota_usage(),
        )
