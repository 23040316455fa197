"""Media search service package.

Layout:
- ``api``: HTTP endpoint for anime/manga search.
- ``pipeline``: primary index + backend fallback orchestration.
- ``adapters``: circuit breaker guarding the primary index.
- ``runtime``: service-local metrics helpers.
"""
