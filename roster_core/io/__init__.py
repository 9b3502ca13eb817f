"""Input/output layer for the schedule pipeline.

Public API:
    load_input(directory)       -- read CSV input dir -> (doctors, stations, excluded_ids, meta)
    write_output(plan, dir)     -- write shifts/unfilled/fairness CSVs and metrics.json
    render_xlsx(plan, path)     -- generate multi-sheet plan.xlsx workbook
    persist_to_db(plan, path)   -- insert the produced shift rows into SQLite
"""

from .reader import load_input
from .writer import write_output

__all__ = [
    "load_input",
    "persist_to_db",
    "render_xlsx",
    "write_output",
]

# Lazy imports for optional heavy dependencies (sqlite3, openpyxl).
def render_xlsx(*args, **kwargs):
    from .xlsx import render_xlsx as _fn
    return _fn(*args, **kwargs)

def persist_to_db(*args, **kwargs):
    from .db_loader import persist_to_db as _fn
    return _fn(*args, **kwargs)
