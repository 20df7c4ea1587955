"""
Slot engine core.

Pure functions over plain value types: interval arithmetic
(engine.intervals) and available-slot computation / overlap validation
(engine.slots). Nothing here performs I/O or reads the clock.
"""
