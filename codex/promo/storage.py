"""
Cloudinary image uploads through the signed REST upload API.
"""

import hashlib
import logging
import time
from typing import Optional

import httpx

from codex.config import (
    CLOUDINARY_API_KEY,
    CLOUDINARY_API_SECRET,
    CLOUDINARY_CLOUD_NAME,
    CLOUDINARY_FOLDER,
    UPLOAD_TIMEOUT_SECONDS,
)
from codex.errors import StorageUploadError

logger = logging.getLogger(__name__)


def sign_params(params: dict, api_secret: str) -> str:
    """sha1 over the alphabetically sorted "k=v&k=v" string plus the secret"""
    to_sign = "&".join(f"{k}={params[k]}" for k in sorted(params) if params[k] not in (None, ""))
    return hashlib.sha1((to_sign + api_secret).encode()).hexdigest()


class ImageStorage:
    def __init__(
        self,
        cloud_name: str = CLOUDINARY_CLOUD_NAME,
        api_key: str = CLOUDINARY_API_KEY,
        api_secret: str = CLOUDINARY_API_SECRET,
        folder: str = CLOUDINARY_FOLDER,
        timeout: float = UPLOAD_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.api_secret = api_secret
        self.folder = folder
        self._client = httpx.AsyncClient(
            base_url=f"https://api.cloudinary.com/v1_1/{cloud_name}",
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self):
        await self._client.aclose()

    def _signed_fields(self) -> dict:
        params = {"folder": self.folder, "timestamp": int(time.time())}
        return {**params, "api_key": self.api_key, "signature": sign_params(params, self.api_secret)}

    async def _upload(self, data: dict, files: Optional[dict] = None) -> dict:
        try:
            response = await self._client.post("/image/upload", data=data, files=files)
            response.raise_for_status()
            result = response.json()
            return {"public_id": result["public_id"], "secure_url": result["secure_url"]}
        except (httpx.HTTPError, KeyError, ValueError) as e:
            logger.exception("Cloudinary upload failed")
            raise StorageUploadError(f"Cloudinary upload failed: {e}") from e

    async def upload_bytes(self, content: bytes, filename: str, content_type: str) -> dict:
        return await self._upload(self._signed_fields(), files={"file": (filename, content, content_type)})

    async def upload_url(self, url: str) -> dict:
        # Cloudinary fetches remote files itself
        return await self._upload({**self._signed_fields(), "file": url})
