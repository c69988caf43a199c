"""
Scheduling Engine

Pure, synchronous scheduling logic:
- Accept an explicit snapshot (roster, config, stats, rounds)
- Take randomness from an injected random.Random
- Never perform I/O or persist anything
"""
