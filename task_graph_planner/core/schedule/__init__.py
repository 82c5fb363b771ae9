"""Layered scheduling of task graphs.

Layers are computed from dependsOn only; explicit data edges never add
ordering constraints of their own.
"""
