"""
Storage Adapter - object storage for message attachments.

upload(path, data, content_type) -> public URL

LocalStorageAdapter writes under a directory on disk (development, tests);
SupabaseStorageAdapter uses the hosted storage REST API.
"""
from abc import ABC, abstractmethod
from pathlib import Path
import logging
import os

import requests

from ..exceptions import ExternalServiceError

logger = logging.getLogger(__name__)

STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "local")
STORAGE_URL = os.getenv("STORAGE_URL", "")
STORAGE_SERVICE_KEY = os.getenv("STORAGE_SERVICE_KEY", "")
STORAGE_BUCKET = os.getenv("STORAGE_BUCKET", "messages")
STORAGE_LOCAL_ROOT = os.getenv("STORAGE_LOCAL_ROOT", "./uploads")


class StorageAdapter(ABC):
    """Abstract base class for storage implementations."""

    @abstractmethod
    def upload(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        """Store `data` at `path` and return its public URL."""
        pass


class LocalStorageAdapter(StorageAdapter):
    """Files on local disk, served from `base_url`."""

    def __init__(self, root: str = STORAGE_LOCAL_ROOT, base_url: str = "/uploads"):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    def upload(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        target = (self.root / path).resolve()
        if self.root.resolve() not in target.parents:
            raise ValueError(f"Path escapes storage root: {path}")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise ExternalServiceError("storage", f"write {path} failed: {e}") from e
        logger.info(f"Stored {len(data)} bytes at {target}")
        return f"{self.base_url}/{path}"


class SupabaseStorageAdapter(StorageAdapter):
    """Hosted object storage bucket (REST upload, public URL)."""

    def __init__(
        self,
        url: str = STORAGE_URL,
        service_key: str = STORAGE_SERVICE_KEY,
        bucket: str = STORAGE_BUCKET,
        session: requests.Session = None,
    ):
        self.url = url.rstrip("/")
        self.service_key = service_key
        self.bucket = bucket
        self.session = session or requests.Session()

    def public_url(self, path: str) -> str:
        return f"{self.url}/storage/v1/object/public/{self.bucket}/{path}"

    def upload(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        headers = {
            "Authorization": f"Bearer {self.service_key}",
            "apikey": self.service_key,
            "Content-Type": content_type,
        }
        try:
            response = self.session.post(
                f"{self.url}/storage/v1/object/{self.bucket}/{path}",
                data=data,
                headers=headers,
                timeout=30,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Upload of {path} to bucket {self.bucket} failed: {e}")
            raise ExternalServiceError("storage", str(e)) from e
        return self.public_url(path)


def build_storage(backend: str = STORAGE_BACKEND) -> StorageAdapter:
    if backend == "supabase":
        return SupabaseStorageAdapter()
    if backend == "local":
        return LocalStorageAdapter()
    raise ValueError(f"Unknown STORAGE_BACKEND: {backend}")
