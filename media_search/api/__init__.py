"""API subpackage for the search service.

The router validates requests and delegates to ``SearchManager``.
"""
