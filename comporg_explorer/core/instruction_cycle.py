"""Instruction-cycle engine.

Advances a CPUState one pipeline stage per call:

    IDLE -> FETCH -> DECODE -> EXECUTE -> WRITEBACK -> IDLE

Every function takes a snapshot and returns a new one; dicts that change are
copied first so a caller holding the previous snapshot never sees the edit.
Instruction semantics are applied exactly once, when entering EXECUTE.
"""
from dataclasses import replace
from typing import Dict

from comporg_explorer.core.cpu_model import (
    CPUState,
    ExecutionStage,
    Instruction,
    InstructionType,
    STAGE_ACTIVITY,
    initial_cpu_state,
)
from comporg_explorer.core.parsing import parse_int, parse_memory_operand


def _enter(state: CPUState, stage: ExecutionStage, **changes) -> CPUState:
    components, flows = STAGE_ACTIVITY[stage]
    return replace(state, current_stage=stage, active_components=components,
                   active_data_flows=flows, **changes)


def select_instruction(state: CPUState, instruction: Instruction) -> CPUState:
    """Load `instruction` and rewind to IDLE.

    Registers and memory carry over so instructions can be chained.
    """
    return replace(
        initial_cpu_state(),
        current_instruction=instruction,
        registers=dict(state.registers),
        memory=dict(state.memory),
    )


def reset_instruction_run(state: CPUState) -> CPUState:
    # back to IDLE with pc 0; registers, memory and the selection survive
    return replace(
        initial_cpu_state(),
        current_instruction=state.current_instruction,
        registers=dict(state.registers),
        memory=dict(state.memory),
    )


def _fetch(state: CPUState) -> CPUState:
    return _enter(state, ExecutionStage.FETCH, pc=state.pc + 1)


def _decode(state: CPUState) -> CPUState:
    return _enter(state, ExecutionStage.DECODE)


def _execute(state: CPUState) -> CPUState:
    new_state = _enter(state, ExecutionStage.EXECUTE)
    if state.current_instruction is None:
        return new_state
    return apply_instruction(new_state, state.current_instruction)


def _writeback(state: CPUState) -> CPUState:
    return _enter(state, ExecutionStage.WRITEBACK)


def _finish(state: CPUState) -> CPUState:
    return _enter(state, ExecutionStage.IDLE)


_TRANSITIONS = {
    ExecutionStage.IDLE: _fetch,
    ExecutionStage.FETCH: _decode,
    ExecutionStage.DECODE: _execute,
    ExecutionStage.EXECUTE: _writeback,
    ExecutionStage.WRITEBACK: _finish,
}


def advance(state: CPUState) -> CPUState:
    """Apply exactly one stage transition.

    Without a selected instruction there is nothing to run, so an IDLE state
    is returned unchanged.
    """
    if state.current_stage is ExecutionStage.IDLE and state.current_instruction is None:
        return state
    return _TRANSITIONS[state.current_stage](state)


def is_run_complete(state: CPUState) -> bool:
    """True once the cycle has wrapped back to IDLE."""
    return state.current_stage is ExecutionStage.IDLE


def _alu(registers: Dict[str, int], operands, op) -> Dict[str, int]:
    dest, src1, src2 = operands[:3]
    updated = dict(registers)
    updated[dest] = op(registers.get(src1, 0), registers.get(src2, 0))
    return updated


def apply_instruction(state: CPUState, instruction: Instruction) -> CPUState:
    """Apply the data effect of `instruction` to `state`.

    Malformed operands (too few, no "M[addr]" match, bad jump target) skip
    the mutation and return `state` as-is.
    """
    ops = instruction.operands
    kind = instruction.type

    if kind is InstructionType.ADD and len(ops) >= 3:
        return replace(state, registers=_alu(state.registers, ops, lambda a, b: a + b))

    if kind is InstructionType.SUB and len(ops) >= 3:
        return replace(state, registers=_alu(state.registers, ops, lambda a, b: a - b))

    if kind is InstructionType.LOAD and len(ops) >= 2:
        dest, src = ops[0], ops[1]
        addr = parse_memory_operand(src)
        if addr is None:
            return state
        registers = dict(state.registers)
        registers[dest] = state.memory.get(addr, 0)
        return replace(state, registers=registers)

    if kind is InstructionType.STORE and len(ops) >= 2:
        dest, src = ops[0], ops[1]
        addr = parse_memory_operand(dest)
        if addr is None:
            return state
        memory = dict(state.memory)
        memory[addr] = state.registers.get(src, 0)
        return replace(state, memory=memory)

    if kind is InstructionType.JUMP and len(ops) >= 1:
        target = parse_int(ops[0])
        if target is None:
            return state
        # overrides the increment done in FETCH
        return replace(state, pc=target)

    return state


def set_register(state: CPUState, name: str, value) -> CPUState:
    v = parse_int(value)
    if v is None:
        return state
    registers = dict(state.registers)
    registers[name] = v
    return replace(state, registers=registers)


def set_memory_cell(state: CPUState, address, value) -> CPUState:
    """Overwrite memory cell `address`; no-op unless both parse as ints."""
    addr = parse_int(address)
    v = parse_int(value)
    if addr is None or v is None:
        return state
    memory = dict(state.memory)
    memory[str(addr)] = v
    return replace(state, memory=memory)


def add_memory_cell(state: CPUState, address, value) -> CPUState:
    # same effect as set_memory_cell; kept separate for the "add cell" control
    return set_memory_cell(state, address, value)
