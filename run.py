"""Entry point for CompOrg Core Explorer.

Usage:
    python run.py         # starts the Tkinter GUI
    python run.py --nogui # runs every catalog instruction and a few memory
                          # accesses headless and prints the logs
"""
import sys
from comporg_explorer.core.cpu_model import PREDEFINED_INSTRUCTIONS
from comporg_explorer.simulation import InstructionCycleSimulation, MemoryAccessSimulation


def headless_test():
    cpu = InstructionCycleSimulation()
    for instr in PREDEFINED_INSTRUCTIONS:
        cpu.select_instruction(instr)
        cpu.run_all()
    for line in cpu.log:
        print(line)
    print('Registers:', cpu.state.registers)
    print('Memory:', cpu.state.memory)
    print('PC:', cpu.state.pc)
    print()

    mem = MemoryAccessSimulation()
    # miss, hit, conflicting write to the same line, then a re-read of 100
    for op, addr, data in [('READ', 100, None), ('READ', 100, None), ('WRITE', 104, 7), ('READ', 100, None)]:
        mem.start_operation(op, addr, data)
        mem.run_all()
    for line in mem.log:
        print(line)
    s = mem.stats
    print('Accesses:', s.accesses)
    print('Hits:', s.hits)
    print('Misses:', s.misses)
    print('Hit rate:', s.hit_rate)
    print('Memory reads:', s.memory_reads)
    print('Memory writes:', s.memory_writes)


def main():
    if '--nogui' in sys.argv:
        headless_test()
    else:
        # Import the UI
        from comporg_explorer.simulation.user_interface import run_ui
        run_ui()


if __name__ == '__main__':
    main()
