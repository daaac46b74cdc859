"""Core Layer — pure domain logic: types, errors, legacy key shim, date formatting.

Invariants:
    - No module in core/ imports from services/, infrastructure/, or db/
    - No IO
"""
