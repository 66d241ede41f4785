"""Ingestion layer.

Everything that turns raw backend JSON into validated models lives here.
Downstream code (index, live data source, map) only sees typed models.
"""

__all__: list[str] = []
