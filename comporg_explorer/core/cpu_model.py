"""CPU model definitions for the instruction-cycle engine.

This file holds the data types used by `instruction_cycle`:
- the component / stage / data-flow tags (enums)
- the Instruction record and the fixed catalog of 5 instructions
- the CPUState snapshot and its initial value

Per-stage active components and data flows live in `STAGE_ACTIVITY` so the
highlighted parts are always a pure lookup on the current stage.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple


class CPUComponentType(Enum):
    PC = 'PC'
    IR = 'IR'
    DECODER = 'DECODER'
    ALU = 'ALU'
    REGISTER = 'REGISTER'
    MEMORY = 'MEMORY'
    BUS = 'BUS'


class ExecutionStage(Enum):
    IDLE = 'IDLE'
    FETCH = 'FETCH'
    DECODE = 'DECODE'
    EXECUTE = 'EXECUTE'
    WRITEBACK = 'WRITEBACK'


class DataFlowDirection(Enum):
    PC_TO_MEMORY = 'PC_TO_MEMORY'
    MEMORY_TO_IR = 'MEMORY_TO_IR'
    IR_TO_DECODER = 'IR_TO_DECODER'
    DECODER_TO_ALU = 'DECODER_TO_ALU'
    ALU_TO_REGISTER = 'ALU_TO_REGISTER'

    @property
    def endpoints(self) -> Tuple[CPUComponentType, CPUComponentType]:
        """(source, target) components of this edge, used when drawing arrows."""
        return _FLOW_ENDPOINTS[self]


_FLOW_ENDPOINTS = {
    DataFlowDirection.PC_TO_MEMORY: (CPUComponentType.PC, CPUComponentType.MEMORY),
    DataFlowDirection.MEMORY_TO_IR: (CPUComponentType.MEMORY, CPUComponentType.IR),
    DataFlowDirection.IR_TO_DECODER: (CPUComponentType.IR, CPUComponentType.DECODER),
    DataFlowDirection.DECODER_TO_ALU: (CPUComponentType.DECODER, CPUComponentType.ALU),
    DataFlowDirection.ALU_TO_REGISTER: (CPUComponentType.ALU, CPUComponentType.REGISTER),
}


class InstructionType(Enum):
    ADD = 'ADD'
    SUB = 'SUB'
    LOAD = 'LOAD'
    STORE = 'STORE'
    JUMP = 'JUMP'


@dataclass(frozen=True)
class Instruction:
    """One catalog instruction.

    Operands are plain strings: registers are bare names ("R1"), memory
    operands use the "M[<address>]" form and jump targets are decimal strings.
    """

    type: InstructionType
    operands: Tuple[str, ...]
    description: str


PREDEFINED_INSTRUCTIONS: Tuple[Instruction, ...] = (
    Instruction(InstructionType.ADD, ('R1', 'R2', 'R3'), 'R1 = R2 + R3'),
    Instruction(InstructionType.SUB, ('R1', 'R2', 'R3'), 'R1 = R2 - R3'),
    Instruction(InstructionType.LOAD, ('R1', 'M[100]'), 'R1 = Memory[100]'),
    Instruction(InstructionType.STORE, ('M[100]', 'R1'), 'Memory[100] = R1'),
    Instruction(InstructionType.JUMP, ('200',), 'PC = 200'),
)

DEFAULT_REGISTERS: Dict[str, int] = {'R1': 0, 'R2': 5, 'R3': 10, 'R4': 15}
# seeded so the catalog LOAD has something to read
DEFAULT_MEMORY: Dict[str, int] = {'100': 42}


# stage -> (active components, active data flows)
STAGE_ACTIVITY = {
    ExecutionStage.IDLE: ((), ()),
    ExecutionStage.FETCH: (
        (CPUComponentType.PC, CPUComponentType.MEMORY, CPUComponentType.IR),
        (DataFlowDirection.PC_TO_MEMORY, DataFlowDirection.MEMORY_TO_IR),
    ),
    ExecutionStage.DECODE: (
        (CPUComponentType.IR, CPUComponentType.DECODER),
        (DataFlowDirection.IR_TO_DECODER,),
    ),
    ExecutionStage.EXECUTE: (
        (CPUComponentType.DECODER, CPUComponentType.ALU),
        (DataFlowDirection.DECODER_TO_ALU,),
    ),
    ExecutionStage.WRITEBACK: (
        (CPUComponentType.ALU, CPUComponentType.REGISTER),
        (DataFlowDirection.ALU_TO_REGISTER,),
    ),
}

STAGE_DESCRIPTIONS = {
    ExecutionStage.IDLE: 'Idle, waiting for an instruction',
    ExecutionStage.FETCH: 'Fetch: PC addresses memory, instruction loaded into IR',
    ExecutionStage.DECODE: 'Decode: IR contents sent to the decoder',
    ExecutionStage.EXECUTE: 'Execute: decoder drives the ALU',
    ExecutionStage.WRITEBACK: 'Writeback: ALU result stored in the register file',
}


@dataclass(frozen=True)
class CPUState:
    current_stage: ExecutionStage = ExecutionStage.IDLE
    active_components: Tuple[CPUComponentType, ...] = ()
    active_data_flows: Tuple[DataFlowDirection, ...] = ()
    current_instruction: Optional[Instruction] = None
    registers: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_REGISTERS))
    memory: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_MEMORY))
    pc: int = 0


def initial_cpu_state() -> CPUState:
    """Fresh state with the default register file and memory seed."""
    return CPUState()


def format_instruction(instruction: Optional[Instruction]) -> str:
    # e.g. "ADD R1, R2, R3"; shown inside the IR box
    if instruction is None:
        return 'No Instruction'
    return f"{instruction.type.value} {', '.join(instruction.operands)}"


__all__ = [
    "CPUComponentType", "ExecutionStage", "DataFlowDirection", "InstructionType",
    "Instruction", "CPUState", "PREDEFINED_INSTRUCTIONS", "DEFAULT_REGISTERS",
    "DEFAULT_MEMORY", "STAGE_ACTIVITY", "STAGE_DESCRIPTIONS",
    "initial_cpu_state", "format_instruction",
]
