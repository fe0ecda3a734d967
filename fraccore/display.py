"""
fraccore/display.py
-------------------
Console output for fracsim runs.
Prints a run header, section breaks, and one table row per time step.
"""
import time
import numpy as np


class SimulationDisplay:
    def __init__(self, title, context_info, enabled=True):
        """
        Args:
            title (str): Name of the run (e.g. "Square Well Drawdown")
            context_info (str): Model summary (e.g. "Oil 1-phase | 68 cells")
            enabled (bool): When False nothing is printed (used by tests).
        """
        self.title = title
        self.context = context_info
        self.enabled = enabled
        self.start_time = time.time()
        self._col_widths = []
        self._headers = []

    def _print(self, *args, **kwargs):
        if self.enabled:
            print(*args, **kwargs)

    def header(self):
        width = 70
        self._print("-" * width)
        self._print(f"fracsim :: {self.title}")
        self._print(f"Model   :: {self.context}")
        self._print("-" * width + "\n")

    def section(self, name):
        self._print(f"--- {name} ---")

    def period(self, index, mode, value):
        """Marks a boundary-condition switch in the step table."""
        self._print(f"   -> Period {index}: {mode} = {value:.6g}")

    def setup_stats_columns(self, headers, widths=None):
        """
        Defines the columns of the step table and prints its header row.

        Args:
            headers (list of str): Column names, e.g. ["Step", "Time", "ht"]
            widths (list of int, optional): Column widths. Defaults to 12.
        """
        self._headers = headers
        self._col_widths = widths if widths is not None else [12] * len(headers)

        self._print("")
        header_str = "  ".join(h.rjust(w) for h, w in zip(self._headers, self._col_widths))
        self._print(header_str)
        self._print("-" * len(header_str))

    def format_value(self, val, width):
        if isinstance(val, (bool, np.bool_)):
            return str(val).rjust(width)
        if isinstance(val, (int, np.integer)):
            return f"{val:d}".rjust(width)
        if isinstance(val, (float, np.floating)):
            abs_val = abs(val)
            if abs_val == 0:
                return f"{0.0:.4f}".rjust(width)
            if abs_val < 1e-2 or abs_val >= 1e5:
                return f"{val:.3e}".rjust(width)
            return f"{val:.5f}".rjust(width)
        return str(val).rjust(width)

    def log_stats(self, *args):
        """Prints one row matching the columns from setup_stats_columns."""
        if len(args) != len(self._col_widths):
            raise ValueError(
                f"Expected {len(self._col_widths)} values for the step table, got {len(args)}."
            )
        self._print("  ".join(self.format_value(v, w) for v, w in zip(args, self._col_widths)))

    def success(self, message="Simulation Complete"):
        elapsed = time.time() - self.start_time
        self._print(f"\n>> {message} ({elapsed:.2f}s)\n")

    def error(self, message):
        self._print(f"\n!! FATAL: {message} !!\n")


Display = SimulationDisplay
