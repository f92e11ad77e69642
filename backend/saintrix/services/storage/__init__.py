"""Attachment storage."""
from .storage_adapter import StorageAdapter, LocalStorageAdapter, SupabaseStorageAdapter, build_storage

__all__ = ["StorageAdapter", "LocalStorageAdapter", "SupabaseStorageAdapter", "build_storage"]
