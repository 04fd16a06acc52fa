"""
CLI runner module.

Provides commands:
- init-config: Write a default config file
- extract: Statement text / entity JSON -> CSV or JSON
- export-create: Create a new ledger spreadsheet
- export-append: Append new transactions to an existing ledger
"""

from .main import create_cli, main

__all__ = [
    "create_cli",
    "main",
]
