"""
Repository-layer exceptions for warehouse store access.
"""

from __future__ import annotations


class StoreError(Exception):
    """Base exception for store adapter failures."""


class TableNotProvisionedError(StoreError):
    """Raised when a statement fails because its target table does not exist yet."""

    def __init__(self, table_name: str) -> None:
        self.table_name = table_name
        super().__init__(f"Table '{table_name}' has not been provisioned.")
