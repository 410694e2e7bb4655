"""Registry and index persistence layer.

This module persists the central volume registry, per-volume collection
indexes, and per-volume audit logs under single-writer discipline.
"""
