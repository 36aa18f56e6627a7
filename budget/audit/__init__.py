"""Audit logging package."""

from budget.audit.logger import AuditLogger

__all__ = ["AuditLogger"]
