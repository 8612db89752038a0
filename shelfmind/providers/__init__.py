"""Concrete adapters for the interfaces in ``shelfmind.interfaces``."""
