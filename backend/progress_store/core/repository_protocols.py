"""Boundary Protocols — contracts between the store and its host.

Invariants:
    - The store never imports host code; the host hands these in
    - Protocol over ABC: a plain dict satisfies DisplayNameResolver
"""

from typing import Protocol

from sqlalchemy import Engine, Insert, Table


class DisplayNameResolver(Protocol):
    """Maps raw achievement keys to display names (optional, may be blank)."""
    def get(self, key: str) -> str | None: ...


class BackendStrategy(Protocol):
    """Per-dialect behavior selected at startup by configuration."""
    name: str

    def prepare_driver(self) -> None: ...
    def open_engine(self) -> Engine: ...
    def replace_statement(self, table: Table, values: dict) -> Insert: ...
