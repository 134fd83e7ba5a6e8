"""Memory-access engine.

One `advance` call moves a MemoryHierarchyState through one access stage:

    IDLE -> CPU_REQUEST -> CHECK_CACHE
    hit:  CHECK_CACHE -> RETURN_DATA
    miss: CHECK_CACHE -> ACCESS_MAIN_MEMORY -> UPDATE_CACHE -> RETURN_DATA
    RETURN_DATA -> COMPLETE -> IDLE

The branch after CHECK_CACHE is picked from `access_result`. Writes are
write-through: cache line and main memory are both updated, on a miss in
UPDATE_CACHE and on a hit in RETURN_DATA.
"""
from dataclasses import replace
from typing import Optional

from comporg_explorer.core.memory_model import (
    CacheEntry,
    MemoryAccessOperation,
    MemoryAccessResult,
    MemoryAccessStage,
    MemoryHierarchyState,
    MemoryOperationType,
    STAGE_ACTIVITY,
    get_cache_index,
    get_cache_tag,
    initial_memory_state,
)
from comporg_explorer.core.parsing import parse_int


def _enter(state: MemoryHierarchyState, stage: MemoryAccessStage, **changes) -> MemoryHierarchyState:
    components, flows = STAGE_ACTIVITY[stage]
    return replace(state, current_stage=stage, active_components=components,
                   active_data_flows=flows, **changes)


def _parse_operation_type(op_type) -> Optional[MemoryOperationType]:
    if isinstance(op_type, MemoryOperationType):
        return op_type
    if isinstance(op_type, str):
        try:
            return MemoryOperationType(op_type.strip().upper())
        except ValueError:
            return None
    return None


def start_operation(state: MemoryHierarchyState, op_type, address, data=None) -> MemoryHierarchyState:
    """Prepare a new READ/WRITE run.

    Rewinds to IDLE and clears the previous result, keeping cache, main
    memory and the hit/miss counters. Returns `state` unchanged when the
    type, address or (for WRITE) data does not parse.
    """
    kind = _parse_operation_type(op_type)
    addr = parse_int(address)
    if kind is None or addr is None or addr < 0:
        return state
    value = None
    if kind is MemoryOperationType.WRITE:
        value = parse_int(data)
        if value is None:
            return state
    operation = MemoryAccessOperation(type=kind, address=addr, data=value)
    return _enter(state, MemoryAccessStage.IDLE, current_operation=operation, access_result=None)


def reset_memory_run(state: MemoryHierarchyState) -> MemoryHierarchyState:
    # fresh cache, but main memory and cumulative counters survive
    return replace(
        initial_memory_state(),
        main_memory=dict(state.main_memory),
        cache_hits=state.cache_hits,
        cache_misses=state.cache_misses,
    )


def _cpu_request(state: MemoryHierarchyState) -> MemoryHierarchyState:
    op = state.current_operation
    if op.type is MemoryOperationType.WRITE:
        return _enter(state, MemoryAccessStage.CPU_REQUEST, cpu_register=op.data)
    return _enter(state, MemoryAccessStage.CPU_REQUEST)


def _check_cache(state: MemoryHierarchyState) -> MemoryHierarchyState:
    address = state.current_operation.address
    index = get_cache_index(address, state.cache_size)
    tag = get_cache_tag(address, state.cache_size)
    entry = state.cache[index]

    if entry.valid and entry.tag == tag:
        return _enter(state, MemoryAccessStage.CHECK_CACHE,
                      access_result=MemoryAccessResult.HIT,
                      cache_hits=state.cache_hits + 1)
    return _enter(state, MemoryAccessStage.CHECK_CACHE,
                  access_result=MemoryAccessResult.MISS,
                  cache_misses=state.cache_misses + 1)


def _access_main_memory(state: MemoryHierarchyState) -> MemoryHierarchyState:
    # highlight only; the data moves in UPDATE_CACHE
    return _enter(state, MemoryAccessStage.ACCESS_MAIN_MEMORY)


def _update_cache(state: MemoryHierarchyState) -> MemoryHierarchyState:
    op = state.current_operation
    index = get_cache_index(op.address, state.cache_size)
    tag = get_cache_tag(op.address, state.cache_size)

    # fill the line with what main memory currently holds
    cache = list(state.cache)
    cache[index] = CacheEntry(valid=True, tag=tag,
                              data=state.main_memory.get(op.address, 0),
                              address=op.address)
    main_memory = dict(state.main_memory)

    # then write-through the new value over both copies
    if op.type is MemoryOperationType.WRITE and op.data is not None:
        main_memory[op.address] = op.data
        cache[index] = replace(cache[index], data=op.data)

    return _enter(state, MemoryAccessStage.UPDATE_CACHE,
                  cache=tuple(cache), main_memory=main_memory)


def _return_data(state: MemoryHierarchyState) -> MemoryHierarchyState:
    op = state.current_operation
    index = get_cache_index(op.address, state.cache_size)

    if op.type is MemoryOperationType.READ:
        return _enter(state, MemoryAccessStage.RETURN_DATA,
                      cpu_register=state.cache[index].data)

    if state.access_result is MemoryAccessResult.HIT and op.data is not None:
        cache = list(state.cache)
        cache[index] = replace(cache[index], data=op.data)
        main_memory = dict(state.main_memory)
        main_memory[op.address] = op.data
        return _enter(state, MemoryAccessStage.RETURN_DATA,
                      cache=tuple(cache), main_memory=main_memory)

    return _enter(state, MemoryAccessStage.RETURN_DATA)


def _complete(state: MemoryHierarchyState) -> MemoryHierarchyState:
    return _enter(state, MemoryAccessStage.COMPLETE)


def _finish(state: MemoryHierarchyState) -> MemoryHierarchyState:
    return _enter(state, MemoryAccessStage.IDLE)


def _after_check(state: MemoryHierarchyState) -> MemoryHierarchyState:
    if state.access_result is MemoryAccessResult.HIT:
        return _return_data(state)
    return _access_main_memory(state)


_TRANSITIONS = {
    MemoryAccessStage.IDLE: _cpu_request,
    MemoryAccessStage.CPU_REQUEST: _check_cache,
    MemoryAccessStage.CHECK_CACHE: _after_check,
    MemoryAccessStage.ACCESS_MAIN_MEMORY: _update_cache,
    MemoryAccessStage.UPDATE_CACHE: _return_data,
    MemoryAccessStage.RETURN_DATA: _complete,
    MemoryAccessStage.COMPLETE: _finish,
}


def advance(state: MemoryHierarchyState) -> MemoryHierarchyState:
    """Apply exactly one access-stage transition.

    A state without a current operation has nothing to do and is returned
    unchanged.
    """
    if state.current_operation is None:
        return state
    return _TRANSITIONS[state.current_stage](state)


def is_run_complete(state: MemoryHierarchyState) -> bool:
    return state.current_stage is MemoryAccessStage.IDLE


def set_main_memory_cell(state: MemoryHierarchyState, address, value) -> MemoryHierarchyState:
    """Overwrite main memory at `address`; no-op unless both parse as ints."""
    addr = parse_int(address)
    v = parse_int(value)
    if addr is None or v is None or addr < 0:
        return state
    main_memory = dict(state.main_memory)
    main_memory[addr] = v
    return replace(state, main_memory=main_memory)


def add_main_memory_cell(state: MemoryHierarchyState, address, value) -> MemoryHierarchyState:
    return set_main_memory_cell(state, address, value)
