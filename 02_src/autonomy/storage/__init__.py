"""Storage module."""

from .storage import IStorage, Storage, to_json

__all__ = ["IStorage", "Storage", "to_json"]
