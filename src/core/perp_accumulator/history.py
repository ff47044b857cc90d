"""Append-only log of settled versions and O(1) account settlement.

`VersionHistory` keeps one `VersionAccumulator` per settled timestamp and only
accepts strictly later timestamps. `settle` turns two checkpoints and a held
size into the amount owed, without touching any other account.
"""

from __future__ import annotations

import bisect
import logging
from dataclasses import dataclass, field
from typing import Iterator

from .errors import ContractViolationError
from .fixed import mul
from .version import VALUE_FIELDS, VersionAccumulator

logger = logging.getLogger(__name__)


def settle(earlier: VersionAccumulator, later: VersionAccumulator, field_name: str, size: int) -> int:
    """``(later.<field> - earlier.<field>) * size`` for one value field."""
    if field_name not in VALUE_FIELDS:
        raise KeyError(f"not a version value field: {field_name!r}")
    return mul(getattr(later, field_name) - getattr(earlier, field_name), size)


def settle_side(
    earlier: VersionAccumulator,
    later: VersionAccumulator,
    *,
    maker: int = 0,
    long: int = 0,
    short: int = 0,
) -> int:
    """Collateral change of a position held constant between two checkpoints."""
    return (
        settle(earlier, later, "maker_value", maker)
        + settle(earlier, later, "long_value", long)
        + settle(earlier, later, "short_value", short)
    )


@dataclass
class VersionHistory:
    """Versions keyed by timestamp, in strictly increasing order."""

    _timestamps: list[int] = field(default_factory=list)
    _versions: list[VersionAccumulator] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self._timestamps)

    def __iter__(self) -> Iterator[tuple[int, VersionAccumulator]]:
        return iter(zip(self._timestamps, self._versions))

    @property
    def latest_timestamp(self) -> int | None:
        return self._timestamps[-1] if self._timestamps else None

    def latest(self) -> VersionAccumulator:
        """Most recent version; genesis zeros when empty."""
        return self._versions[-1] if self._versions else VersionAccumulator()

    def append(self, timestamp: int, version: VersionAccumulator) -> None:
        latest = self.latest_timestamp
        if latest is not None and timestamp <= latest:
            logger.warning("rejected version at %d: latest is %d", timestamp, latest)
            raise ContractViolationError(
                f"version timestamp {timestamp} does not advance past {latest}"
            )
        self._timestamps.append(timestamp)
        self._versions.append(version)

    def at(self, timestamp: int) -> VersionAccumulator:
        """Version settled exactly at *timestamp*. Raises KeyError if absent."""
        i = bisect.bisect_left(self._timestamps, timestamp)
        if i == len(self._timestamps) or self._timestamps[i] != timestamp:
            raise KeyError(f"no version at {timestamp}")
        return self._versions[i]

    def at_or_before(self, timestamp: int) -> VersionAccumulator:
        """Latest version not after *timestamp*; genesis zeros if none."""
        i = bisect.bisect_right(self._timestamps, timestamp)
        return self._versions[i - 1] if i else VersionAccumulator()
