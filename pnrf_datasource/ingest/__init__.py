"""Ingest package - recording access, file time index and catalog building.

This package handles:
- The narrow decoder interface (groups, recorders, channels, segments)
- Locating recordings by begin time (floor search over a sorted file list)
- Building a resource catalog from representative recordings

Key classes:
- RecordingSource: injected decoder handle (memory or PNRF COM backed)
- RecordingCache: call-local cache of opened recordings and file begins
- RecordingDiscovery: candidate file search with load-confidence filtering

Design principle:
- Sample periods are compared as integer ticks rounded to 10 ns
- Open recordings never outlive the call that opened them
"""
