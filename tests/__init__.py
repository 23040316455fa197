"""Tests for the media search gateway.

Upstreams are faked with ``httpx.MockTransport`` (see ``fakes``); no running
Meilisearch or backend API is needed.
"""
