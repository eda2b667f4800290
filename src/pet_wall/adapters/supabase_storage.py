"""Supabase Storage client for composed photos."""

import asyncio
from dataclasses import dataclass

from supabase import Client

from pet_wall.services.rotation import AssetResolver
from pet_wall.services.submissions import StorageClient

CACHE_CONTROL_SECONDS = "3600"


@dataclass
class SupabaseStorage(StorageClient):
    """Uploads assets to a Supabase Storage bucket."""

    client: Client
    bucket: str

    def upload(self, key: str, data: bytes, content_type: str) -> None:
        """Upload bytes under a new key; existing keys are never overwritten."""
        self.client.storage.from_(self.bucket).upload(
            key,
            data,
            {
                "content-type": content_type,
                "cache-control": CACHE_CONTROL_SECONDS,
                "upsert": "false",
            },
        )

    def public_url(self, key: str) -> str:
        """Return the public URL for a stored object."""
        return self.client.storage.from_(self.bucket).get_public_url(key)


@dataclass
class StorageAssetResolver(AssetResolver):
    """Resolves asset URLs off the event loop."""

    storage: StorageClient

    async def resolve_public_url(self, key: str) -> str:
        """Return the public URL for a stored asset."""
        return await asyncio.to_thread(self.storage.public_url, key)
