"""Session objects used by the UI.

Each simulation holds the current snapshot for one engine, feeds user
actions into the core functions and keeps a small text log. `step()`
advances one stage and returns an info dict for the UI, the same way the
cache simulator's step used to.

While `running` is True (set by the AutoRunner) every edit is refused so
nothing touches the registers/memory/cache mid-run.
"""
from typing import Callable, List, Optional

from comporg_explorer.core import instruction_cycle, memory_access
from comporg_explorer.core.cpu_model import (
    CPUState,
    ExecutionStage,
    Instruction,
    STAGE_DESCRIPTIONS as CPU_STAGE_DESCRIPTIONS,
    format_instruction,
    initial_cpu_state,
)
from comporg_explorer.core.memory_model import (
    MemoryAccessResult,
    MemoryAccessStage,
    MemoryHierarchyState,
    MemoryOperationType,
    STAGE_DESCRIPTIONS as MEMORY_STAGE_DESCRIPTIONS,
    get_cache_index,
    get_cache_tag,
    initial_memory_state,
)
from comporg_explorer.data.stats_export import Statistics

HIT_HISTORY_LEN = 200


class _Session:
    def __init__(self):
        self.running = False
        self.log: List[str] = []

    def _append_log(self, text: str):
        self.log.append(text)

    def _refuse_if_running(self, action: str) -> bool:
        if self.running:
            self._append_log(f"{action} ignored: a run is active")
            return True
        return False

    def run_all(self, callback: Optional[Callable[[dict], None]] = None) -> List[dict]:
        """Step until the run wraps back to IDLE. Returns the step infos."""
        infos = []
        while self.has_next():
            info = self.step()
            infos.append(info)
            if callback:
                callback(info)
            if info['complete']:
                break
        return infos


class InstructionCycleSimulation(_Session):
    def __init__(self, state: Optional[CPUState] = None):
        super().__init__()
        self.state = state or initial_cpu_state()

    def select_instruction(self, instruction: Instruction) -> bool:
        if self._refuse_if_running('Instruction selection'):
            return False
        self.state = instruction_cycle.select_instruction(self.state, instruction)
        self._append_log(f"Selected {format_instruction(instruction)} ({instruction.description})")
        return True

    def has_next(self) -> bool:
        return self.state.current_instruction is not None

    def step(self) -> Optional[dict]:
        if not self.has_next():
            return None
        before = self.state
        self.state = instruction_cycle.advance(before)
        complete = instruction_cycle.is_run_complete(self.state)
        stage = self.state.current_stage
        if complete:
            self._append_log(f"{format_instruction(self.state.current_instruction)} complete")
        else:
            self._append_log(f"{stage.value}: {CPU_STAGE_DESCRIPTIONS[stage]}")
        if stage is ExecutionStage.EXECUTE:
            for line in self._describe_changes(before, self.state):
                self._append_log(line)
        return {
            'stage': stage,
            'active_components': self.state.active_components,
            'active_data_flows': self.state.active_data_flows,
            'pc': self.state.pc,
            'registers': dict(self.state.registers),
            'memory': dict(self.state.memory),
            'complete': complete,
        }

    @staticmethod
    def _describe_changes(before: CPUState, after: CPUState) -> List[str]:
        lines = []
        for name, value in after.registers.items():
            if before.registers.get(name) != value:
                lines.append(f"  {name} <- {value}")
        for addr, value in after.memory.items():
            if before.memory.get(addr) != value:
                lines.append(f"  M[{addr}] <- {value}")
        if before.pc != after.pc:
            lines.append(f"  PC <- {after.pc}")
        return lines

    def reset(self):
        self.state = instruction_cycle.reset_instruction_run(self.state)
        self._append_log('Instruction run reset')

    def set_register(self, name: str, value) -> bool:
        if self._refuse_if_running('Register edit'):
            return False
        new_state = instruction_cycle.set_register(self.state, name, value)
        changed = new_state is not self.state
        self.state = new_state
        return changed

    def set_memory_cell(self, address, value) -> bool:
        if self._refuse_if_running('Memory edit'):
            return False
        new_state = instruction_cycle.set_memory_cell(self.state, address, value)
        changed = new_state is not self.state
        self.state = new_state
        return changed

    def add_memory_cell(self, address, value) -> bool:
        if self._refuse_if_running('Memory edit'):
            return False
        new_state = instruction_cycle.add_memory_cell(self.state, address, value)
        changed = new_state is not self.state
        if changed:
            self._append_log(f"Added M[{address}] = {value}")
        self.state = new_state
        return changed


class MemoryAccessSimulation(_Session):
    def __init__(self, state: Optional[MemoryHierarchyState] = None):
        super().__init__()
        self.state = state or initial_memory_state()
        self.stats = Statistics()
        self.hit_rate_history: List[float] = []

    def start_operation(self, op_type, address, data=None) -> bool:
        if self._refuse_if_running('Operation start'):
            return False
        new_state = memory_access.start_operation(self.state, op_type, address, data)
        if new_state is self.state:
            self._append_log(f"Invalid operation input: address={address!r} data={data!r}")
            return False
        self.state = new_state
        op = new_state.current_operation
        idx = get_cache_index(op.address, new_state.cache_size)
        tag = get_cache_tag(op.address, new_state.cache_size)
        text = f"{op.type.value} address {op.address} (index {idx}, tag {tag})"
        if op.type is MemoryOperationType.WRITE:
            text += f" data {op.data}"
        self._append_log(text)
        return True

    def has_next(self) -> bool:
        return self.state.current_operation is not None

    def step(self) -> Optional[dict]:
        if not self.has_next():
            return None
        before = self.state
        self.state = memory_access.advance(before)
        self._record(before, self.state)
        complete = memory_access.is_run_complete(self.state)
        stage = self.state.current_stage
        if complete:
            self._append_log('Memory operation complete')
        else:
            self._append_log(f"{stage.value}: {MEMORY_STAGE_DESCRIPTIONS[stage]}")
        op = self.state.current_operation
        return {
            'stage': stage,
            'active_components': self.state.active_components,
            'active_data_flows': self.state.active_data_flows,
            'address': op.address,
            'is_write': op.type is MemoryOperationType.WRITE,
            'access_result': self.state.access_result,
            'cpu_register': self.state.cpu_register,
            'cache_index': get_cache_index(op.address, self.state.cache_size),
            'stats': self.stats.as_dict(),
            'complete': complete,
        }

    def _record(self, before: MemoryHierarchyState, after: MemoryHierarchyState):
        stage = after.current_stage
        if stage is MemoryAccessStage.CHECK_CACHE:
            hit = after.access_result is MemoryAccessResult.HIT
            self.stats.record_access(hit)
            self._append_log(f"  cache {'HIT' if hit else 'MISS'}")
            self.hit_rate_history.append(self.stats.hit_rate)
            if len(self.hit_rate_history) > HIT_HISTORY_LEN:
                self.hit_rate_history = self.hit_rate_history[-HIT_HISTORY_LEN:]
        elif stage is MemoryAccessStage.UPDATE_CACHE:
            self.stats.memory_reads += 1

        # write-through happens in UPDATE_CACHE on a miss, RETURN_DATA on a hit
        if after.current_operation.type is MemoryOperationType.WRITE:
            if stage is MemoryAccessStage.UPDATE_CACHE or (
                    stage is MemoryAccessStage.RETURN_DATA
                    and before.current_stage is MemoryAccessStage.CHECK_CACHE):
                self.stats.memory_writes += 1

    def reset(self):
        self.state = memory_access.reset_memory_run(self.state)
        self._append_log('Memory run reset, cache cleared')

    def clear(self) -> bool:
        """Restore the seeded initial state and zero every counter."""
        if self._refuse_if_running('Clear'):
            return False
        self.state = initial_memory_state()
        self.stats.reset()
        self.hit_rate_history = []
        self._append_log('Session cleared')
        return True

    def set_main_memory_cell(self, address, value) -> bool:
        if self._refuse_if_running('Memory edit'):
            return False
        new_state = memory_access.set_main_memory_cell(self.state, address, value)
        changed = new_state is not self.state
        self.state = new_state
        return changed

    def add_main_memory_cell(self, address, value) -> bool:
        if self._refuse_if_running('Memory edit'):
            return False
        new_state = memory_access.add_main_memory_cell(self.state, address, value)
        changed = new_state is not self.state
        if changed:
            self._append_log(f"Added main memory [{address}] = {value}")
        self.state = new_state
        return changed
