"""HTTP surface.

This module exposes the SDK over a small JSON API with a uniform
``{success, data, meta}`` response envelope.
"""
