"""Two-stage search pipeline.

- ``search_manager``: queries the primary index, then the fallback backend.
- ``outcomes``: typed results of the primary stage.
- ``envelope``: the paginated response shape.
"""
