"""Statistics and exporter for the memory hierarchy view.
"""
import csv
import json
import time
from typing import Dict, List, Optional


def _ask_save_path(extension: str, label: str, title: str) -> Optional[str]:
    from tkinter import filedialog
    return filedialog.asksaveasfilename(defaultextension=extension,
                                        filetypes=[(label, '*' + extension)],
                                        title=title) or None


def export_chart_json(hit_rate_history: List[float], stats: Dict[str, float], fpath: Optional[str] = None) -> Optional[str]:
    """Export hit-rate history and stats to a JSON file. Returns saved path or None.
    """
    try:
        if not fpath:
            fpath = _ask_save_path('.json', 'JSON files', 'Save chart data as JSON')
        if not fpath:
            return None
        data = {
            'hit_rate_history': list(hit_rate_history),
            'stats': stats
        }
        with open(fpath, 'w', encoding='utf-8') as fh:
            json.dump(data, fh, indent=2)
        return fpath
    except (OSError, TypeError, ValueError):
        return None


def export_chart_pdf(hit_rate_history: List[float], fpath: Optional[str] = None) -> Optional[str]:
    """Render the hit-rate history to a PDF using matplotlib and save it.
    Returns the saved file path or None on cancel/failure.
    """
    try:
        if not fpath:
            fpath = _ask_save_path('.pdf', 'PDF files', 'Save chart as PDF')
        if not fpath:
            return None

        import matplotlib
        matplotlib.use('Agg')
        import matplotlib.pyplot as plt

        data = list(hit_rate_history) or [0]
        fig, ax = plt.subplots(figsize=(6, 2))
        ax.plot(range(len(data)), data, color='#FFA500', linewidth=2)
        ax.fill_between(range(len(data)), data, color='#FFA500', alpha=0.1)
        ax.set_ylim(0, 1)
        ax.set_xlabel('Operation')
        ax.set_ylabel('Hit rate')
        ax.grid(False)
        fig.tight_layout()
        fig.savefig(fpath, format='pdf', dpi=150)
        plt.close(fig)
        return fpath
    except (OSError, ValueError):
        return None


class Statistics:
    def __init__(self):
        self.reset()

    def reset(self):
        # counters start from zero
        self.accesses = 0
        self.hits = 0
        self.misses = 0
        self.memory_reads = 0
        self.memory_writes = 0
        self.start_time = time.time()

    def record_access(self, hit: bool):
        # one call per CHECK_CACHE
        self.accesses += 1
        if hit:
            self.hits += 1
        else:
            self.misses += 1

    @property
    def hit_rate(self):
        return (self.hits / self.accesses) if self.accesses else 0.0

    @property
    def miss_rate(self):
        return (self.misses / self.accesses) if self.accesses else 0.0

    def as_dict(self) -> Dict[str, float]:
        return {
            'accesses': self.accesses,
            'hits': self.hits,
            'misses': self.misses,
            'hit_rate': self.hit_rate,
            'miss_rate': self.miss_rate,
            'memory_reads': self.memory_reads,
            'memory_writes': self.memory_writes,
        }


class Exporter:
    @staticmethod
    def export_stats_csv(path: str, stats: Statistics):
        with open(path, 'w', newline='') as f:
            writer = csv.writer(f)
            writer.writerow(['accesses', 'hits', 'misses', 'hit_rate', 'miss_rate', 'memory_reads', 'memory_writes'])
            writer.writerow([
                stats.accesses, stats.hits, stats.misses, stats.hit_rate, stats.miss_rate,
                stats.memory_reads, stats.memory_writes
            ])
