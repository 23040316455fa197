"""Shared libraries for the media search gateway.

Subpackages:
- ``media_libs.common``: configuration, logging, and metrics.
- ``media_libs.search_backends``: filter expressions and upstream search
  clients (Meilisearch primary index, backend API fallback).

Notes:
- Avoid route-specific logic; keep modules cohesive and broadly useful.
"""
