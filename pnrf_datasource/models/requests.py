from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from pnrf_datasource.models.catalog import CatalogResource, ChannelKey, Representation

STATUS_ABSENT = 0
STATUS_PRESENT = 1


def window_length(begin: int, end: int, sample_period: int) -> int:
    """Number of sample slots covering [begin, end) at `sample_period` (all in ticks)."""
    if int(sample_period) <= 0:
        raise ValueError(f"sample_period must be > 0, got {sample_period}")
    if int(end) <= int(begin):
        raise ValueError(f"end must be after begin (begin={begin}, end={end})")
    return (int(end) - int(begin)) // int(sample_period)


@dataclass(frozen=True, eq=False)
class ReadRequest:
    """
    One (channel, sample period) read with caller-owned output buffers.

    data: float64 samples, status: uint8 presence mask (0 absent, 1 present).
    Both cover exactly the requested window at the representation's period.
    The read engine writes into them in place and never reallocates.
    Requests compare and hash by identity.
    """
    resource: CatalogResource
    representation: Representation
    data: np.ndarray
    status: np.ndarray

    @property
    def channel_key(self) -> ChannelKey:
        return self.resource.channel_key

    @property
    def sample_period(self) -> int:
        return self.representation.sample_period

    @classmethod
    def allocate(
        cls,
        resource: CatalogResource,
        representation: Representation,
        begin: int,
        end: int,
    ) -> "ReadRequest":
        n = window_length(begin, end, representation.sample_period)
        return cls(
            resource=resource,
            representation=representation,
            data=np.zeros(n, dtype=np.float64),
            status=np.zeros(n, dtype=np.uint8),
        )

    def validate(self, begin: int, end: int) -> None:
        """Check buffer shapes against the window before any write."""
        n = window_length(begin, end, self.sample_period)
        if self.data.ndim != 1 or self.status.ndim != 1:
            raise ValueError(f"{self.resource.id}: data and status buffers must be 1-D")
        if len(self.data) != n or len(self.status) != n:
            raise ValueError(
                f"{self.resource.id}/{self.representation.id}: buffers must hold {n} samples, "
                f"got data={len(self.data)} status={len(self.status)}"
            )
        if not self.data.flags.writeable or not self.status.flags.writeable:
            raise ValueError(f"{self.resource.id}: buffers must be writeable")
