"""Read package - windowed reads into caller-owned buffers.

Design principle:
- The engine never allocates or resizes output buffers
- Absent samples are marked in the status mask, never synthesized
"""

from .frames import window_frame
from .windowed import find_channel, read_channel_segments, read_window

__all__ = [
    "find_channel",
    "read_channel_segments",
    "read_window",
    "window_frame",
]
