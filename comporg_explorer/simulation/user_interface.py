"""Tkinter front-end for the two simulators.

The window has two tabs, one per engine. Each tab draws the components as
canvas boxes and the data flows as arrows, lighting up whatever the current
stage marks active. All state changes go through the session objects; the UI
only reads snapshots and forwards user input.
"""

import tkinter as tk
from tkinter import ttk, messagebox, filedialog

from comporg_explorer.core.cpu_model import (
    CPUComponentType,
    DataFlowDirection,
    PREDEFINED_INSTRUCTIONS,
    STAGE_DESCRIPTIONS as CPU_STAGE_DESCRIPTIONS,
    format_instruction,
)
from comporg_explorer.core.memory_model import (
    MemoryComponentType,
    MemoryDataFlowDirection,
    MemoryOperationType,
    STAGE_DESCRIPTIONS as MEMORY_STAGE_DESCRIPTIONS,
    get_cache_index,
)
from comporg_explorer.data.stats_export import Exporter, export_chart_json, export_chart_pdf
from comporg_explorer.simulation import AutoRunner, InstructionCycleSimulation, MemoryAccessSimulation
from comporg_explorer.simulation._ui_helpers import (
    ANIM_SPEED_STEP,
    DEFAULT_ANIM_SPEED,
    MAX_ANIM_SPEED,
    MIN_ANIM_SPEED,
)

# Colors and fonts
BACKGROUND_MAIN = "#23967F"
BACKGROUND_CONTAINER = "#292F36"
FONT_COLOR = "white"
ACTIVE_COLOR = "#E56B70"
IDLE_COLOR = "#3C4650"
FLOW_COLOR = "#6874E8"
FONT_CONTAINER = "Cascadia Code"

# canvas boxes: x, y, width, height
CPU_BOXES = {
    CPUComponentType.PC: (50, 150, 80, 60),
    CPUComponentType.IR: (200, 150, 100, 60),
    CPUComponentType.DECODER: (350, 150, 120, 60),
    CPUComponentType.ALU: (350, 250, 120, 80),
    CPUComponentType.REGISTER: (200, 300, 100, 120),
    CPUComponentType.MEMORY: (50, 250, 100, 120),
}

CPU_ARROWS = {
    DataFlowDirection.PC_TO_MEMORY: (90, 210, 90, 250),
    DataFlowDirection.MEMORY_TO_IR: (150, 280, 200, 180),
    DataFlowDirection.IR_TO_DECODER: (300, 180, 350, 180),
    DataFlowDirection.DECODER_TO_ALU: (410, 210, 410, 250),
    DataFlowDirection.ALU_TO_REGISTER: (350, 290, 300, 330),
}

MEMORY_BOXES = {
    MemoryComponentType.CPU: (50, 100, 100, 80),
    MemoryComponentType.CACHE: (250, 100, 150, 200),
    MemoryComponentType.MAIN_MEMORY: (500, 100, 150, 300),
}

MEMORY_ARROWS = {
    MemoryDataFlowDirection.CPU_TO_CACHE: (150, 140, 250, 140),
    MemoryDataFlowDirection.CACHE_TO_CPU: (250, 160, 150, 160),
    MemoryDataFlowDirection.CACHE_TO_MAIN_MEMORY: (400, 180, 500, 180),
    MemoryDataFlowDirection.MAIN_MEMORY_TO_CACHE: (500, 220, 400, 220),
}


class UserInterface:
    def __init__(self):
        self.window = tk.Tk()
        self.window.title("CompOrg Core Explorer")
        self.window.geometry("1180x760")
        self.window.configure(bg=BACKGROUND_MAIN)

        self.cpu_sim = InstructionCycleSimulation()
        self.mem_sim = MemoryAccessSimulation()
        self.cpu_runner = AutoRunner(self.cpu_sim, self.window.after, self.window.after_cancel,
                                     on_step=lambda info: self._after_cpu_step())
        self.mem_runner = AutoRunner(self.mem_sim, self.window.after, self.window.after_cancel,
                                     on_step=lambda info: self._after_mem_step())

        # User input variables
        self.anim_speed = tk.IntVar(value=DEFAULT_ANIM_SPEED)
        self.instruction_index = tk.IntVar(value=-1)
        self.new_cpu_addr = tk.StringVar(value='')
        self.new_cpu_value = tk.StringVar(value='0')
        self.operation = tk.StringVar(value=MemoryOperationType.READ.value)
        self.address = tk.StringVar(value='100')
        self.write_data = tk.StringVar(value='0')
        self.new_mem_addr = tk.StringVar(value='')
        self.new_mem_value = tk.StringVar(value='0')
        self.cpu_stage_text = tk.StringVar(value='')
        self.mem_stage_text = tk.StringVar(value='')

        self.register_vars = {}
        self.cpu_memory_vars = {}
        self._edit_widgets = []
        self._cpu_log_len = 0
        self._mem_log_len = 0

        self.setup_ui()
        self.refresh_cpu()
        self.refresh_memory()

    # ------------------------------------------------------------------ layout

    def setup_ui(self):
        notebook = ttk.Notebook(self.window)
        notebook.pack(fill=tk.BOTH, expand=True, padx=10, pady=10)

        cpu_tab = tk.Frame(notebook, bg=BACKGROUND_CONTAINER)
        mem_tab = tk.Frame(notebook, bg=BACKGROUND_CONTAINER)
        notebook.add(cpu_tab, text="CPU Instruction Cycle")
        notebook.add(mem_tab, text="Memory Hierarchy")

        self._build_cpu_tab(cpu_tab)
        self._build_memory_tab(mem_tab)

        speed = tk.Scale(self.window, from_=MIN_ANIM_SPEED, to=MAX_ANIM_SPEED,
                         resolution=ANIM_SPEED_STEP, orient=tk.HORIZONTAL,
                         label="Animation speed (ms per stage)", variable=self.anim_speed,
                         command=self._on_speed_change, bg=BACKGROUND_MAIN, fg=FONT_COLOR,
                         highlightthickness=0, length=320)
        speed.pack(side=tk.BOTTOM, pady=4)

    def _label(self, parent, text, **kw):
        return tk.Label(parent, text=text, bg=BACKGROUND_CONTAINER, fg=FONT_COLOR,
                        font=(FONT_CONTAINER, 10), **kw)

    def _controls(self, parent, runner, start, reset):
        row = tk.Frame(parent, bg=BACKGROUND_CONTAINER)
        row.pack(fill=tk.X, pady=6)
        tk.Button(row, text="Auto Run", command=start).pack(side=tk.LEFT, padx=2)
        tk.Button(row, text="Step", command=lambda: self._single_step(runner)).pack(side=tk.LEFT, padx=2)
        tk.Button(row, text="Stop", command=lambda: self._stop(runner)).pack(side=tk.LEFT, padx=2)
        tk.Button(row, text="Reset", command=reset).pack(side=tk.LEFT, padx=2)
        return row

    def _log_pane(self, parent):
        text = tk.Text(parent, height=10, width=60, bg="#1e1e1e", fg="#dcdcdc",
                       font=(FONT_CONTAINER, 9), state='disabled')
        text.pack(fill=tk.BOTH, expand=True, pady=4)
        return text

    def _build_cpu_tab(self, tab):
        self.cpu_canvas = tk.Canvas(tab, width=520, height=440, bg=BACKGROUND_CONTAINER, highlightthickness=0)
        self.cpu_canvas.pack(side=tk.LEFT, padx=10, pady=10)

        side = tk.Frame(tab, bg=BACKGROUND_CONTAINER)
        side.pack(side=tk.LEFT, fill=tk.BOTH, expand=True, padx=10, pady=10)

        self._label(side, "", textvariable=self.cpu_stage_text, anchor='w').pack(fill=tk.X)

        self._label(side, "Instruction").pack(anchor='w', pady=(8, 0))
        for i, instr in enumerate(PREDEFINED_INSTRUCTIONS):
            rb = tk.Radiobutton(side, text=f"{format_instruction(instr)}    ({instr.description})",
                                variable=self.instruction_index, value=i,
                                command=self.on_instruction_selected,
                                bg=BACKGROUND_CONTAINER, fg=FONT_COLOR, selectcolor=IDLE_COLOR,
                                anchor='w')
            rb.pack(fill=tk.X)
            self._edit_widgets.append(rb)

        self.register_frame = tk.Frame(side, bg=BACKGROUND_CONTAINER)
        self.register_frame.pack(fill=tk.X, pady=6)
        self.cpu_memory_frame = tk.Frame(side, bg=BACKGROUND_CONTAINER)
        self.cpu_memory_frame.pack(fill=tk.X, pady=6)

        add_row = tk.Frame(side, bg=BACKGROUND_CONTAINER)
        add_row.pack(fill=tk.X)
        self._label(add_row, "New cell").pack(side=tk.LEFT)
        for var in (self.new_cpu_addr, self.new_cpu_value):
            e = tk.Entry(add_row, textvariable=var, width=8)
            e.pack(side=tk.LEFT, padx=2)
            self._edit_widgets.append(e)
        btn = tk.Button(add_row, text="Add memory", command=self.on_add_cpu_memory)
        btn.pack(side=tk.LEFT, padx=2)
        self._edit_widgets.append(btn)

        self._controls(side, self.cpu_runner, self.start_cpu_run, self.reset_cpu_run)
        self.cpu_log = self._log_pane(side)

    def _build_memory_tab(self, tab):
        self.mem_canvas = tk.Canvas(tab, width=700, height=440, bg=BACKGROUND_CONTAINER, highlightthickness=0)
        self.mem_canvas.pack(side=tk.LEFT, padx=10, pady=10)

        side = tk.Frame(tab, bg=BACKGROUND_CONTAINER)
        side.pack(side=tk.LEFT, fill=tk.BOTH, expand=True, padx=10, pady=10)

        self._label(side, "", textvariable=self.mem_stage_text, anchor='w', wraplength=380).pack(fill=tk.X)

        op_row = tk.Frame(side, bg=BACKGROUND_CONTAINER)
        op_row.pack(fill=tk.X, pady=6)
        for kind in MemoryOperationType:
            rb = tk.Radiobutton(op_row, text=kind.value, variable=self.operation, value=kind.value,
                                bg=BACKGROUND_CONTAINER, fg=FONT_COLOR, selectcolor=IDLE_COLOR)
            rb.pack(side=tk.LEFT)
            self._edit_widgets.append(rb)
        self._label(op_row, "Addr").pack(side=tk.LEFT, padx=(8, 0))
        addr_entry = tk.Entry(op_row, textvariable=self.address, width=6)
        addr_entry.pack(side=tk.LEFT)
        self._label(op_row, "Data").pack(side=tk.LEFT, padx=(8, 0))
        data_entry = tk.Entry(op_row, textvariable=self.write_data, width=6)
        data_entry.pack(side=tk.LEFT)
        self._edit_widgets.extend([addr_entry, data_entry])

        edit_row = tk.Frame(side, bg=BACKGROUND_CONTAINER)
        edit_row.pack(fill=tk.X, pady=4)
        self._label(edit_row, "Main memory").pack(side=tk.LEFT)
        for var in (self.new_mem_addr, self.new_mem_value):
            e = tk.Entry(edit_row, textvariable=var, width=6)
            e.pack(side=tk.LEFT, padx=2)
            self._edit_widgets.append(e)
        btn = tk.Button(edit_row, text="Set", command=self.on_set_main_memory)
        btn.pack(side=tk.LEFT, padx=2)
        self._edit_widgets.append(btn)

        row = self._controls(side, self.mem_runner, self.start_memory_run, self.reset_memory_run)
        clear_btn = tk.Button(row, text="Clear", command=self.clear_memory_session)
        clear_btn.pack(side=tk.LEFT, padx=2)
        self._edit_widgets.append(clear_btn)

        stats = tk.Frame(side, bg=BACKGROUND_CONTAINER)
        stats.pack(fill=tk.X)
        self.stat_hits = self._label(stats, "Hits: 0")
        self.stat_hits.pack(side=tk.LEFT, padx=4)
        self.stat_misses = self._label(stats, "Misses: 0")
        self.stat_misses.pack(side=tk.LEFT, padx=4)
        self.stat_hit_rate = self._label(stats, "Hit rate: 0.000")
        self.stat_hit_rate.pack(side=tk.LEFT, padx=4)

        self.hit_canvas = tk.Canvas(side, width=360, height=70, bg="#1e1e1e", highlightthickness=0)
        self.hit_canvas.pack(pady=4)

        export_row = tk.Frame(side, bg=BACKGROUND_CONTAINER)
        export_row.pack(fill=tk.X)
        tk.Button(export_row, text="Export JSON", command=self.export_json).pack(side=tk.LEFT, padx=2)
        tk.Button(export_row, text="Export PDF", command=self.export_pdf).pack(side=tk.LEFT, padx=2)
        tk.Button(export_row, text="Export CSV", command=self.export_csv).pack(side=tk.LEFT, padx=2)

        self.mem_log = self._log_pane(side)

    # ------------------------------------------------------------------ drawing

    def _draw_box(self, canvas, box, title, lines, active):
        x, y, w, h = box
        canvas.create_rectangle(x, y, x + w, y + h, fill=ACTIVE_COLOR if active else IDLE_COLOR,
                                outline=FONT_COLOR, width=2 if active else 1)
        canvas.create_text(x + w / 2, y + 12, text=title, fill=FONT_COLOR, font=(FONT_CONTAINER, 10, 'bold'))
        for i, line in enumerate(lines):
            canvas.create_text(x + w / 2, y + 30 + i * 15, text=line, fill=FONT_COLOR, font=(FONT_CONTAINER, 8))

    def _draw_arrows(self, canvas, arrows, active_flows):
        for flow, (x1, y1, x2, y2) in arrows.items():
            active = flow in active_flows
            canvas.create_line(x1, y1, x2, y2, arrow=tk.LAST,
                               fill=FLOW_COLOR if active else "#555555",
                               width=3 if active else 1,
                               dash=() if active else (4, 2))

    def draw_cpu(self):
        state = self.cpu_sim.state
        canvas = self.cpu_canvas
        canvas.delete('all')
        memory_lines = [f"M[{a}]: {v}" for a, v in list(state.memory.items())[:3]] or ['Empty']
        if len(state.memory) > 3:
            memory_lines.append('...')
        contents = {
            CPUComponentType.PC: [f"PC: {state.pc}"],
            CPUComponentType.IR: [format_instruction(state.current_instruction)],
            CPUComponentType.REGISTER: [f"{r}: {v}" for r, v in state.registers.items()],
            CPUComponentType.MEMORY: memory_lines,
        }
        self._draw_arrows(canvas, CPU_ARROWS, state.active_data_flows)
        for comp, box in CPU_BOXES.items():
            self._draw_box(canvas, box, comp.value, contents.get(comp, []),
                           comp in state.active_components)

    def draw_memory(self):
        state = self.mem_sim.state
        canvas = self.mem_canvas
        canvas.delete('all')
        op = state.current_operation
        cpu_lines = []
        if op is not None:
            cpu_lines.append(f"{op.type.value} [{op.address}]")
            if op.type is MemoryOperationType.WRITE:
                cpu_lines.append(f"data: {op.data}")
        cpu_lines.append(f"reg: {'-' if state.cpu_register is None else state.cpu_register}")

        active_index = get_cache_index(op.address, state.cache_size) if op is not None else None
        cache_lines = [state.access_result.value if state.access_result else '']
        for i, entry in enumerate(state.cache):
            marker = '>' if i == active_index else ' '
            if entry.valid:
                cache_lines.append(f"{marker}{i}: t{entry.tag} [{entry.address}]={entry.data}")
            else:
                cache_lines.append(f"{marker}{i}: invalid")
        memory_lines = []
        for addr, value in sorted(state.main_memory.items())[:16]:
            marker = '>' if op is not None and op.address == addr else ' '
            memory_lines.append(f"{marker}[{addr}]: {value}")

        contents = {
            MemoryComponentType.CPU: cpu_lines,
            MemoryComponentType.CACHE: cache_lines,
            MemoryComponentType.MAIN_MEMORY: memory_lines,
        }
        self._draw_arrows(canvas, MEMORY_ARROWS, state.active_data_flows)
        for comp, box in MEMORY_BOXES.items():
            self._draw_box(canvas, box, comp.value, contents[comp], comp in state.active_components)

    def _draw_hit_chart(self):
        canvas = self.hit_canvas
        canvas.delete('all')
        data = self.mem_sim.hit_rate_history
        if len(data) < 2:
            return
        w = int(canvas['width'])
        h = int(canvas['height'])
        step = w / (len(data) - 1)
        points = []
        for i, v in enumerate(data):
            points.extend([i * step, h - 4 - v * (h - 8)])
        canvas.create_line(*points, fill='#FFA500', width=2)

    # ------------------------------------------------------------------ refresh

    def _sync_log(self, widget, log, seen):
        widget.configure(state='normal')
        for line in log[seen:]:
            widget.insert('end', line + '\n')
        widget.see('end')
        widget.configure(state='disabled')
        return len(log)

    def _rebuild_entries(self, frame, title, items, store, on_commit):
        for child in frame.winfo_children():
            child.destroy()
        store.clear()
        self._label(frame, title).grid(row=0, column=0, columnspan=8, sticky='w')
        for i, (key, value) in enumerate(items):
            var = tk.StringVar(value=str(value))
            self._label(frame, str(key)).grid(row=1 + i // 4, column=(i % 4) * 2, sticky='e')
            entry = tk.Entry(frame, textvariable=var, width=6)
            entry.grid(row=1 + i // 4, column=(i % 4) * 2 + 1, padx=2)
            entry.bind('<Return>', lambda e, k=key, v=var: on_commit(k, v.get()))
            entry.bind('<FocusOut>', lambda e, k=key, v=var: on_commit(k, v.get()))
            if self.cpu_sim.running:
                entry.configure(state='disabled')
            store[key] = var

    def refresh_cpu(self):
        state = self.cpu_sim.state
        self.cpu_stage_text.set(f"Stage: {state.current_stage.value}  |  {CPU_STAGE_DESCRIPTIONS[state.current_stage]}")
        self._rebuild_entries(self.register_frame, "Registers", state.registers.items(),
                              self.register_vars, self.on_register_commit)
        self._rebuild_entries(self.cpu_memory_frame, "Memory", state.memory.items(),
                              self.cpu_memory_vars, self.on_cpu_memory_commit)
        self.draw_cpu()
        self._cpu_log_len = self._sync_log(self.cpu_log, self.cpu_sim.log, self._cpu_log_len)

    def refresh_memory(self):
        state = self.mem_sim.state
        self.mem_stage_text.set(f"Stage: {state.current_stage.value}  |  {MEMORY_STAGE_DESCRIPTIONS[state.current_stage]}")
        self.stat_hits.configure(text=f"Hits: {state.cache_hits}")
        self.stat_misses.configure(text=f"Misses: {state.cache_misses}")
        self.stat_hit_rate.configure(text=f"Hit rate: {self.mem_sim.stats.hit_rate:.3f}")
        self.draw_memory()
        self._draw_hit_chart()
        self._mem_log_len = self._sync_log(self.mem_log, self.mem_sim.log, self._mem_log_len)

    def _set_controls_enabled(self, enabled: bool):
        """Disable every editing control while a run is active."""
        state = 'normal' if enabled else 'disabled'
        for w in self._edit_widgets:
            w.configure(state=state)

    def _after_cpu_step(self):
        self.refresh_cpu()
        self._set_controls_enabled(not (self.cpu_sim.running or self.mem_sim.running))

    def _after_mem_step(self):
        self.refresh_memory()
        self._set_controls_enabled(not (self.cpu_sim.running or self.mem_sim.running))

    # ------------------------------------------------------------------ actions

    def _on_speed_change(self, value):
        self.cpu_runner.set_delay(value)
        self.mem_runner.set_delay(value)

    def _single_step(self, runner):
        try:
            if runner.single_step() is None and not runner.active:
                messagebox.showinfo("Step", "Nothing to run: select an instruction or start an operation first.")
        except Exception as e:
            runner.session.log.append(f"Error during step: {e}")

    def _stop(self, runner):
        runner.stop()
        self._set_controls_enabled(True)

    def on_instruction_selected(self):
        idx = self.instruction_index.get()
        if 0 <= idx < len(PREDEFINED_INSTRUCTIONS):
            self.cpu_sim.select_instruction(PREDEFINED_INSTRUCTIONS[idx])
            self.refresh_cpu()

    def on_register_commit(self, name, value):
        if self.cpu_sim.set_register(name, value):
            self.refresh_cpu()

    def on_cpu_memory_commit(self, address, value):
        if self.cpu_sim.set_memory_cell(address, value):
            self.refresh_cpu()

    def on_add_cpu_memory(self):
        if self.cpu_sim.add_memory_cell(self.new_cpu_addr.get(), self.new_cpu_value.get()):
            self.new_cpu_addr.set('')
            self.new_cpu_value.set('0')
        self.refresh_cpu()

    def on_set_main_memory(self):
        if self.mem_sim.add_main_memory_cell(self.new_mem_addr.get(), self.new_mem_value.get()):
            self.new_mem_addr.set('')
            self.new_mem_value.set('0')
        self.refresh_memory()

    def start_cpu_run(self):
        if self.cpu_sim.state.current_instruction is None:
            messagebox.showinfo("Auto Run", "Select an instruction first.")
            return
        if self.cpu_runner.start():
            self._set_controls_enabled(False)

    def reset_cpu_run(self):
        self.cpu_runner.stop()
        self.cpu_sim.reset()
        self._set_controls_enabled(True)
        self.refresh_cpu()

    def start_memory_run(self):
        if self.mem_runner.active:
            return
        data = self.write_data.get() if self.operation.get() == MemoryOperationType.WRITE.value else None
        if not self.mem_sim.start_operation(self.operation.get(), self.address.get(), data):
            self.refresh_memory()
            return
        if self.mem_runner.start():
            self._set_controls_enabled(False)

    def reset_memory_run(self):
        self.mem_runner.stop()
        self.mem_sim.reset()
        self._set_controls_enabled(True)
        self.refresh_memory()

    def clear_memory_session(self):
        self.mem_runner.stop()
        self.mem_sim.clear()
        self.refresh_memory()

    def export_json(self):
        path = export_chart_json(self.mem_sim.hit_rate_history, self.mem_sim.stats.as_dict())
        if path:
            self.mem_sim.log.append(f"Exported chart data to {path}")
            self.refresh_memory()

    def export_pdf(self):
        path = export_chart_pdf(self.mem_sim.hit_rate_history)
        if path:
            self.mem_sim.log.append(f"Exported chart to {path}")
            self.refresh_memory()

    def export_csv(self):
        path = filedialog.asksaveasfilename(defaultextension='.csv', filetypes=[('CSV files', '*.csv')],
                                            title='Save statistics as CSV')
        if not path:
            return
        try:
            Exporter.export_stats_csv(path, self.mem_sim.stats)
            self.mem_sim.log.append(f"Exported statistics to {path}")
        except OSError as e:
            self.mem_sim.log.append(f"CSV export failed: {e}")
        self.refresh_memory()

    def start(self):
        self.window.mainloop()


def run_ui():
    ui = UserInterface()
    ui.start()


if __name__ == '__main__':
    run_ui()
