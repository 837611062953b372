"""
Benchmark suite for partialjson parsing performance.

Compares partialjson on complete documents against standard JSON libraries:
- Python standard library json
- orjson (C-optimized)
- ujson (ultra-fast JSON)

Measures recovery speed on truncated documents and streamed prefixes.
"""
