"""Infrastructure Layer — backend strategies, connection supervision, executors, logging.

Invariants:
    - Driver and SQLAlchemy errors are mapped to core/errors.py types at this boundary
    - Reads and writes reach the database only through the executors
"""
