"""Upstream search backends and filter expressions.

Primary components:
- ``base``: abstract ``SearchBackend`` interface and common exceptions.
- ``filters``: structured filter-expression builder for Meilisearch.
- ``meilisearch``: the primary full-text index client.
- ``backend_api``: the fallback backend's advanced-search client.
- ``factory``: helpers to construct both backends from ``SearchConfig``.

Guidance:
- Prefer ``factory.create_backends_from_config`` so the service stays
  decoupled from constructor details.
"""
