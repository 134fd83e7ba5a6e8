"""Unit tests for the memory-access engine.

The cache is the fixed 4-line direct-mapped cache; seeded main memory holds
100->42, 101->55, 102->78, 200->90, 201->65, 202->33.
"""

import pytest
from comporg_explorer.core.memory_access import (
    add_main_memory_cell,
    advance,
    is_run_complete,
    reset_memory_run,
    set_main_memory_cell,
    start_operation,
)
from comporg_explorer.core.memory_model import (
    CacheEntry,
    MemoryAccessResult,
    MemoryAccessStage,
    MemoryComponentType,
    MemoryDataFlowDirection,
    MemoryOperationType,
    STAGE_ACTIVITY,
    initial_memory_state,
)

READ = MemoryOperationType.READ
WRITE = MemoryOperationType.WRITE


def _run(state, op_type, address, data=None):
    """Start an operation and advance until it wraps back to IDLE.
    Returns (final_state, list_of_stages_visited).
    """
    state = start_operation(state, op_type, address, data)
    stages = []
    while True:
        state = advance(state)
        stages.append(state.current_stage)
        if is_run_complete(state):
            return state, stages


def test_initial_state():
    state = initial_memory_state()
    assert state.cache_size == 4
    assert len(state.cache) == 4
    assert all(not e.valid for e in state.cache)
    assert state.main_memory[100] == 42
    assert state.cache_hits == 0 and state.cache_misses == 0
    assert state.cpu_register is None


def test_first_read_misses_and_fills_line():
    # Input: READ 100 on an empty cache.
    # Expected: miss path through main memory, slot 0 = {valid, tag 25, data 42, address 100},
    # cpu_register 42, one miss counted.
    state, stages = _run(initial_memory_state(), READ, 100)
    assert stages == [
        MemoryAccessStage.CPU_REQUEST,
        MemoryAccessStage.CHECK_CACHE,
        MemoryAccessStage.ACCESS_MAIN_MEMORY,
        MemoryAccessStage.UPDATE_CACHE,
        MemoryAccessStage.RETURN_DATA,
        MemoryAccessStage.COMPLETE,
        MemoryAccessStage.IDLE,
    ]
    assert state.access_result is MemoryAccessResult.MISS
    assert state.cache_misses == 1
    assert state.cache_hits == 0
    assert state.cache[0] == CacheEntry(valid=True, tag=25, data=42, address=100)
    assert state.cpu_register == 42


def test_second_read_hits_and_skips_main_memory():
    state, _ = _run(initial_memory_state(), READ, 100)
    state, stages = _run(state, READ, 100)
    assert stages == [
        MemoryAccessStage.CPU_REQUEST,
        MemoryAccessStage.CHECK_CACHE,
        MemoryAccessStage.RETURN_DATA,
        MemoryAccessStage.COMPLETE,
        MemoryAccessStage.IDLE,
    ]
    assert state.access_result is MemoryAccessResult.HIT
    assert state.cache_hits == 1
    assert state.cache_misses == 1
    assert state.cpu_register == 42


def test_active_sets_follow_stage():
    state = start_operation(initial_memory_state(), READ, 101)
    for _ in range(7):
        state = advance(state)
        assert (state.active_components, state.active_data_flows) == STAGE_ACTIVITY[state.current_stage]
    assert state.active_components == () and state.active_data_flows == ()


def test_check_cache_highlights_cpu_to_cache():
    state = start_operation(initial_memory_state(), READ, 100)
    state = advance(advance(state))
    assert state.current_stage is MemoryAccessStage.CHECK_CACHE
    assert set(state.active_components) == {MemoryComponentType.CPU, MemoryComponentType.CACHE}
    assert state.active_data_flows == (MemoryDataFlowDirection.CPU_TO_CACHE,)


def test_conflicting_write_evicts_and_writes_through():
    # Input: READ 100 (slot 0, tag 25) then WRITE 104 data 99 (slot 0, tag 26).
    # Expected: the write misses, slot 0 now holds address 104 with data 99 and
    # main memory[104] == 99.
    state, _ = _run(initial_memory_state(), READ, 100)
    state, stages = _run(state, WRITE, 104, 99)
    assert MemoryAccessStage.UPDATE_CACHE in stages
    assert state.access_result is MemoryAccessResult.MISS
    assert state.cache_misses == 2
    assert state.cache[0] == CacheEntry(valid=True, tag=26, data=99, address=104)
    assert state.main_memory[104] == 99
    # the old value at 100 is still in main memory
    assert state.main_memory[100] == 42


def test_write_miss_intermediate_states():
    state = start_operation(initial_memory_state(), WRITE, 101, 7)
    requested = advance(state)
    assert requested.current_stage is MemoryAccessStage.CPU_REQUEST
    assert requested.cpu_register == 7

    accessed = advance(advance(requested))
    assert accessed.current_stage is MemoryAccessStage.ACCESS_MAIN_MEMORY
    # nothing has moved yet
    assert accessed.main_memory[101] == 55
    assert not accessed.cache[1].valid

    updated = advance(accessed)
    assert updated.current_stage is MemoryAccessStage.UPDATE_CACHE
    assert updated.cache[1] == CacheEntry(valid=True, tag=25, data=7, address=101)
    assert updated.main_memory[101] == 7


def test_write_hit_writes_through_in_return_data():
    # Input: READ 101 to fill slot 1, then WRITE 101 data 7.
    # Expected: HIT; memory still 55 at CHECK_CACHE, both cache and memory
    # hold 7 after RETURN_DATA.
    state, _ = _run(initial_memory_state(), READ, 101)
    state = start_operation(state, WRITE, 101, 7)
    state = advance(advance(state))
    assert state.access_result is MemoryAccessResult.HIT
    assert state.main_memory[101] == 55
    state = advance(state)
    assert state.current_stage is MemoryAccessStage.RETURN_DATA
    assert state.cache[1].data == 7
    assert state.main_memory[101] == 7
    # write keeps the value it put in the CPU register
    assert state.cpu_register == 7


def test_read_of_absent_address_returns_zero():
    state, _ = _run(initial_memory_state(), READ, 300)
    assert state.cpu_register == 0
    assert state.cache[0] == CacheEntry(valid=True, tag=75, data=0, address=300)


def test_counters_match_number_of_runs():
    state = initial_memory_state()
    ops = [(READ, 100, None), (READ, 100, None), (WRITE, 104, 1), (READ, 201, None),
           (READ, 100, None), (WRITE, 201, 3), (READ, 202, None)]
    for op, addr, data in ops:
        state, _ = _run(state, op, addr, data)
    assert state.cache_hits + state.cache_misses == len(ops)


def test_valid_lines_stay_consistent_with_their_slot():
    state = initial_memory_state()
    for addr in (100, 101, 102, 103, 200, 201, 7, 13):
        state, _ = _run(state, READ, addr)
    for slot, entry in enumerate(state.cache):
        if entry.valid:
            assert entry.address % state.cache_size == slot
            assert entry.tag == entry.address // state.cache_size


def test_transitions_do_not_touch_previous_snapshot():
    state = start_operation(initial_memory_state(), WRITE, 102, 5)
    state = advance(advance(advance(state)))
    cache_before = state.cache
    memory_before = dict(state.main_memory)
    updated = advance(state)
    assert state.cache is cache_before
    assert state.main_memory == memory_before
    assert updated.main_memory is not state.main_memory


def test_start_operation_keeps_cache_and_counters():
    state, _ = _run(initial_memory_state(), READ, 100)
    started = start_operation(state, 'write', '104', '12')
    assert started.current_stage is MemoryAccessStage.IDLE
    assert started.access_result is None
    assert started.current_operation.type is WRITE
    assert started.current_operation.address == 104
    assert started.current_operation.data == 12
    assert started.cache == state.cache
    assert started.cache_misses == 1


def test_read_ignores_data_argument():
    started = start_operation(initial_memory_state(), READ, 100, 'whatever')
    assert started.current_operation.data is None


@pytest.mark.parametrize('op_type,address,data', [
    (READ, 'abc', None),
    (READ, '', None),
    (READ, -4, None),
    (WRITE, 100, None),
    (WRITE, 100, 'x'),
    ('DELETE', 100, None),
])
def test_start_operation_rejects_bad_input(op_type, address, data):
    state = initial_memory_state()
    assert start_operation(state, op_type, address, data) is state


def test_advance_without_operation_is_noop():
    state = initial_memory_state()
    assert advance(state) is state


def test_reset_clears_cache_but_keeps_memory_and_counters():
    state, _ = _run(initial_memory_state(), WRITE, 104, 9)
    state, _ = _run(state, READ, 104)
    reset = reset_memory_run(state)
    assert all(not e.valid for e in reset.cache)
    assert reset.main_memory[104] == 9
    assert reset.cache_hits == 1 and reset.cache_misses == 1
    assert reset.current_operation is None
    assert reset.current_stage is MemoryAccessStage.IDLE
    assert reset_memory_run(reset) == reset


def test_main_memory_setters():
    state = initial_memory_state()
    updated = set_main_memory_cell(state, '100', '1')
    assert updated.main_memory[100] == 1
    assert state.main_memory[100] == 42
    added = add_main_memory_cell(updated, 5, 6)
    assert added.main_memory[5] == 6
    assert set_main_memory_cell(state, 'x', 1) is state
    assert add_main_memory_cell(state, 5, 'y') is state
