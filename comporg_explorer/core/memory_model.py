"""Memory hierarchy model for the memory-access engine.

A fixed 4-line direct-mapped cache in front of a sparse main memory:
  index = address % cache_size
  tag   = address // cache_size
A valid line stores the tag and the full address it was filled from, so
`tag == get_cache_tag(address)` and `get_cache_index(address) == slot` hold
for every valid entry.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple


CACHE_SIZE = 4

DEFAULT_MAIN_MEMORY: Dict[int, int] = {
    100: 42,
    101: 55,
    102: 78,
    200: 90,
    201: 65,
    202: 33,
}


class MemoryComponentType(Enum):
    CPU = 'CPU'
    CACHE = 'CACHE'
    MAIN_MEMORY = 'MAIN_MEMORY'


class MemoryOperationType(Enum):
    READ = 'READ'
    WRITE = 'WRITE'


class MemoryAccessResult(Enum):
    HIT = 'HIT'
    MISS = 'MISS'


class MemoryAccessStage(Enum):
    IDLE = 'IDLE'
    CPU_REQUEST = 'CPU_REQUEST'
    CHECK_CACHE = 'CHECK_CACHE'
    ACCESS_MAIN_MEMORY = 'ACCESS_MAIN_MEMORY'
    UPDATE_CACHE = 'UPDATE_CACHE'
    RETURN_DATA = 'RETURN_DATA'
    COMPLETE = 'COMPLETE'


class MemoryDataFlowDirection(Enum):
    CPU_TO_CACHE = 'CPU_TO_CACHE'
    CACHE_TO_CPU = 'CACHE_TO_CPU'
    CACHE_TO_MAIN_MEMORY = 'CACHE_TO_MAIN_MEMORY'
    MAIN_MEMORY_TO_CACHE = 'MAIN_MEMORY_TO_CACHE'

    @property
    def endpoints(self) -> Tuple[MemoryComponentType, MemoryComponentType]:
        return _FLOW_ENDPOINTS[self]


_FLOW_ENDPOINTS = {
    MemoryDataFlowDirection.CPU_TO_CACHE: (MemoryComponentType.CPU, MemoryComponentType.CACHE),
    MemoryDataFlowDirection.CACHE_TO_CPU: (MemoryComponentType.CACHE, MemoryComponentType.CPU),
    MemoryDataFlowDirection.CACHE_TO_MAIN_MEMORY: (MemoryComponentType.CACHE, MemoryComponentType.MAIN_MEMORY),
    MemoryDataFlowDirection.MAIN_MEMORY_TO_CACHE: (MemoryComponentType.MAIN_MEMORY, MemoryComponentType.CACHE),
}


# stage -> (active components, active data flows)
STAGE_ACTIVITY = {
    MemoryAccessStage.IDLE: ((), ()),
    MemoryAccessStage.CPU_REQUEST: ((MemoryComponentType.CPU,), ()),
    MemoryAccessStage.CHECK_CACHE: (
        (MemoryComponentType.CPU, MemoryComponentType.CACHE),
        (MemoryDataFlowDirection.CPU_TO_CACHE,),
    ),
    MemoryAccessStage.ACCESS_MAIN_MEMORY: (
        (MemoryComponentType.CACHE, MemoryComponentType.MAIN_MEMORY),
        (MemoryDataFlowDirection.MAIN_MEMORY_TO_CACHE,),
    ),
    MemoryAccessStage.UPDATE_CACHE: (
        (MemoryComponentType.CACHE, MemoryComponentType.MAIN_MEMORY),
        (MemoryDataFlowDirection.MAIN_MEMORY_TO_CACHE,),
    ),
    MemoryAccessStage.RETURN_DATA: (
        (MemoryComponentType.CPU, MemoryComponentType.CACHE),
        (MemoryDataFlowDirection.CACHE_TO_CPU,),
    ),
    MemoryAccessStage.COMPLETE: ((MemoryComponentType.CPU,), ()),
}

STAGE_DESCRIPTIONS = {
    MemoryAccessStage.IDLE: 'Idle, waiting for a memory operation',
    MemoryAccessStage.CPU_REQUEST: 'CPU issues the memory request',
    MemoryAccessStage.CHECK_CACHE: 'Cache compares the tag at the indexed line',
    MemoryAccessStage.ACCESS_MAIN_MEMORY: 'Miss: main memory is accessed',
    MemoryAccessStage.UPDATE_CACHE: 'Cache line filled from main memory',
    MemoryAccessStage.RETURN_DATA: 'Data returned between cache and CPU',
    MemoryAccessStage.COMPLETE: 'Operation complete',
}


@dataclass(frozen=True)
class CacheEntry:
    valid: bool = False
    tag: int = 0
    data: int = 0
    address: int = 0


@dataclass(frozen=True)
class MemoryAccessOperation:
    """A single READ or WRITE request. `data` is only set for WRITE."""

    type: MemoryOperationType
    address: int
    data: Optional[int] = None


def empty_cache(size: int = CACHE_SIZE) -> Tuple[CacheEntry, ...]:
    return tuple(CacheEntry() for _ in range(size))


@dataclass(frozen=True)
class MemoryHierarchyState:
    current_stage: MemoryAccessStage = MemoryAccessStage.IDLE
    active_components: Tuple[MemoryComponentType, ...] = ()
    active_data_flows: Tuple[MemoryDataFlowDirection, ...] = ()
    current_operation: Optional[MemoryAccessOperation] = None
    access_result: Optional[MemoryAccessResult] = None
    cache: Tuple[CacheEntry, ...] = field(default_factory=empty_cache)
    main_memory: Dict[int, int] = field(default_factory=lambda: dict(DEFAULT_MAIN_MEMORY))
    cpu_register: Optional[int] = None
    cache_size: int = CACHE_SIZE
    cache_hits: int = 0
    cache_misses: int = 0


def initial_memory_state() -> MemoryHierarchyState:
    """Four invalid cache lines, seeded main memory, zeroed counters."""
    return MemoryHierarchyState()


def get_cache_index(address: int, cache_size: int = CACHE_SIZE) -> int:
    return address % cache_size


def get_cache_tag(address: int, cache_size: int = CACHE_SIZE) -> int:
    return address // cache_size


def find_cache_hit(cache, address: int) -> int:
    """Return the slot holding `address`, or -1 on a miss."""
    index = get_cache_index(address, len(cache))
    tag = get_cache_tag(address, len(cache))
    entry = cache[index]
    if entry.valid and entry.tag == tag:
        return index
    return -1


__all__ = [
    "CACHE_SIZE", "DEFAULT_MAIN_MEMORY", "MemoryComponentType", "MemoryOperationType",
    "MemoryAccessResult", "MemoryAccessStage", "MemoryDataFlowDirection",
    "STAGE_ACTIVITY", "STAGE_DESCRIPTIONS", "CacheEntry", "MemoryAccessOperation",
    "MemoryHierarchyState", "empty_cache", "initial_memory_state",
    "get_cache_index", "get_cache_tag", "find_cache_hit",
]
