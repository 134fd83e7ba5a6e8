"""Core engines: the CPU instruction cycle and the cache/memory access path."""
