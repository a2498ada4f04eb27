"""Core domain layer - entities, interfaces, and exceptions."""

from pdv_sync.core import entities, exceptions, interfaces

__all__ = ["entities", "interfaces", "exceptions"]
