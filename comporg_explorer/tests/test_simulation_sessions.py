from comporg_explorer.core.cpu_model import ExecutionStage, PREDEFINED_INSTRUCTIONS
from comporg_explorer.core.memory_model import MemoryAccessStage
from comporg_explorer.simulation import InstructionCycleSimulation, MemoryAccessSimulation

ADD, SUB, LOAD, STORE, JUMP = PREDEFINED_INSTRUCTIONS


def test_cpu_run_all_returns_one_info_per_stage():
    sim = InstructionCycleSimulation()
    sim.select_instruction(ADD)
    seen = []
    infos = sim.run_all(callback=seen.append)
    assert [i['stage'] for i in infos] == [
        ExecutionStage.FETCH,
        ExecutionStage.DECODE,
        ExecutionStage.EXECUTE,
        ExecutionStage.WRITEBACK,
        ExecutionStage.IDLE,
    ]
    assert seen == infos
    assert infos[-1]['complete'] is True
    assert infos[2]['registers']['R1'] == 15


def test_cpu_step_without_instruction_returns_none():
    sim = InstructionCycleSimulation()
    assert sim.has_next() is False
    assert sim.step() is None
    assert sim.run_all() == []


def test_cpu_log_mentions_register_change():
    sim = InstructionCycleSimulation()
    sim.select_instruction(SUB)
    sim.run_all()
    assert any('R1 <- -5' in line for line in sim.log)
    assert sim.log[-1] == 'SUB R1, R2, R3 complete'


def test_cpu_setters_report_changes():
    sim = InstructionCycleSimulation()
    assert sim.set_register('R2', '9') is True
    assert sim.set_register('R2', 'nine') is False
    assert sim.state.registers['R2'] == 9
    assert sim.add_memory_cell('300', '4') is True
    assert sim.set_memory_cell('300', 'x') is False
    assert sim.state.memory['300'] == 4


def test_cpu_reset_mid_run():
    sim = InstructionCycleSimulation()
    sim.select_instruction(JUMP)
    sim.step()
    sim.step()
    sim.reset()
    assert sim.state.current_stage is ExecutionStage.IDLE
    assert sim.state.pc == 0
    assert sim.state.current_instruction is JUMP


def test_memory_statistics_track_runs():
    # Input: READ 100 (miss), READ 100 (hit), WRITE 104 data 7 (miss, evicts 100).
    # Expected: 3 accesses, 1 hit, 2 misses, 2 fills from memory, 1 write-through,
    # hit-rate history sampled once per access.
    sim = MemoryAccessSimulation()
    for op, addr, data in [('READ', 100, None), ('READ', 100, None), ('WRITE', 104, 7)]:
        assert sim.start_operation(op, addr, data) is True
        sim.run_all()
    s = sim.stats
    assert s.accesses == 3
    assert s.hits == 1
    assert s.misses == 2
    assert s.memory_reads == 2
    assert s.memory_writes == 1
    assert sim.hit_rate_history == [0.0, 0.5, 1 / 3]
    assert sim.state.cache_hits == 1 and sim.state.cache_misses == 2


def test_memory_write_hit_counts_one_memory_write():
    sim = MemoryAccessSimulation()
    sim.start_operation('READ', 200)
    sim.run_all()
    sim.start_operation('WRITE', 200, 90)
    infos = sim.run_all()
    assert [i['stage'] for i in infos] == [
        MemoryAccessStage.CPU_REQUEST,
        MemoryAccessStage.CHECK_CACHE,
        MemoryAccessStage.RETURN_DATA,
        MemoryAccessStage.COMPLETE,
        MemoryAccessStage.IDLE,
    ]
    # same value written back still counts as a write-through
    assert sim.stats.memory_writes == 1
    assert sim.stats.memory_reads == 1


def test_memory_invalid_start_is_logged():
    sim = MemoryAccessSimulation()
    assert sim.start_operation('READ', 'abc') is False
    assert sim.state.current_operation is None
    assert sim.log[-1].startswith('Invalid operation input')
    assert sim.step() is None


def test_memory_step_info():
    sim = MemoryAccessSimulation()
    sim.start_operation('WRITE', 102, 3)
    info = sim.step()
    assert info['stage'] is MemoryAccessStage.CPU_REQUEST
    assert info['is_write'] is True
    assert info['address'] == 102
    assert info['cache_index'] == 2
    assert info['cpu_register'] == 3
    assert info['complete'] is False


def test_memory_reset_and_clear():
    sim = MemoryAccessSimulation()
    sim.add_main_memory_cell(5, 50)
    sim.start_operation('READ', 5)
    sim.run_all()

    sim.reset()
    assert all(not e.valid for e in sim.state.cache)
    assert sim.state.main_memory[5] == 50
    assert sim.state.cache_misses == 1

    assert sim.clear() is True
    assert 5 not in sim.state.main_memory
    assert sim.state.cache_misses == 0
    assert sim.stats.accesses == 0
    assert sim.hit_rate_history == []


def test_memory_edits_refused_while_running():
    sim = MemoryAccessSimulation()
    sim.running = True
    assert sim.set_main_memory_cell(100, 1) is False
    assert sim.start_operation('READ', 100) is False
    assert sim.clear() is False
    assert sim.state.main_memory[100] == 42
