"""Concrete adapters for the interfaces in ``ragcast/interfaces``."""
