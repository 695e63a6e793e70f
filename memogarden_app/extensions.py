"""Shared Flask extensions (re-exported from the core layer)."""

from .core.extensions import db, login_manager, scheduler

__all__ = ["db", "login_manager", "scheduler"]
