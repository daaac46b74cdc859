"""Progress Store — achievement and statistic persistence for a multiplayer game server.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)

Design Decisions:
    - Explicit imports only; the entry point is
      progress_store.services.progress_database.ProgressDatabase
"""
