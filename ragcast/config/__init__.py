"""Configuration module — exports Settings and the query expansion loader."""

from ragcast.config.loader import load_query_expansions
from ragcast.config.settings import Settings

__all__ = ["Settings", "load_query_expansions"]
