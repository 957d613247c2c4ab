"""Cluster connections and SQL text helpers."""

from aurora_provisioner.db.connection import ConnectionManager

__all__ = ["ConnectionManager"]
