"""Volume lifecycle and collection transfer.

This module manages the on-disk markers that define volume ownership,
attaches and detaches volumes in the registry, and moves collections
between volumes.
"""
