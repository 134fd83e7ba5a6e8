"""Simulation package.

Exposes the session classes at `comporg_explorer.simulation` so callers can
write `from comporg_explorer.simulation import InstructionCycleSimulation`.
"""
from .simulation import InstructionCycleSimulation, MemoryAccessSimulation
from .runner import AutoRunner

__all__ = ["InstructionCycleSimulation", "MemoryAccessSimulation", "AutoRunner"]
