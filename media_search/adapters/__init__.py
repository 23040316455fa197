"""Adapters guarding calls to upstream services.

- ``circuit_breaker``: stops calling the primary index while it is failing.
"""
