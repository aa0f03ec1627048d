"""Read API components."""

from ftso_indexer.api.data_api import create_app, start_api

__all__ = ["create_app", "start_api"]
