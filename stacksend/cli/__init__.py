"""
stacksend.cli - Typer command-line devnet for the escrow ledger and oracle.
"""

from .main import app, main

__all__ = ["app", "main"]
