"""
MemeStudio Backend - Cloudinary Asset Host
===========================================

What:  AssetHost implementation backed by the Cloudinary SDK.
How:   The SDK is synchronous, so each call runs in a worker thread
       (asyncio.to_thread) and never blocks the event loop. Credentials are
       passed per call; the SDK's global config is left untouched.

Calls:
    uploader.upload(file, folder=..., transformation=...) → secure_url, public_id, width, height
    uploader.destroy(public_id)                           → {"result": "ok" | "not found"}

Uploads are limited to 1000x1000 on the host (`c_limit`), matching what the
editor renders.
"""

import asyncio
import logging
import time
from io import BytesIO
from typing import Any, Dict, Optional, Union

import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError

from memestudio.config import settings
from memestudio.exceptions import AssetHostError
from memestudio.services.asset_base import AssetHost, AssetUpload

logger = logging.getLogger(__name__)

UPLOAD_TRANSFORMATION = [{"width": 1000, "height": 1000, "crop": "limit"}]


class CloudinaryAssetHost(AssetHost):
    """
    Cloudinary client.

    Args:
        cloud_name, api_key, api_secret: account credentials
        timeout:  per-request timeout in seconds
        uploader: object exposing upload()/destroy() (defaults to cloudinary.uploader)
    """

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        timeout: float = 30.0,
        uploader: Any = None,
    ):
        self.cloud_name = cloud_name
        self.api_key = api_key
        self._api_secret = api_secret
        self.timeout = timeout
        self._uploader = uploader or cloudinary.uploader

    def is_configured(self) -> bool:
        return bool(self.cloud_name and self.api_key and self._api_secret)

    def _credentials(self) -> Dict[str, Any]:
        return {
            "cloud_name": self.cloud_name,
            "api_key": self.api_key,
            "api_secret": self._api_secret,
            "timeout": self.timeout,
        }

    async def _call(self, action: str, *args: Any, **options: Any) -> Dict[str, Any]:
        if not self.is_configured():
            raise AssetHostError(
                message="Image hosting is not configured",
                context={"action": action},
            )

        method = getattr(self._uploader, action)
        try:
            result = await asyncio.to_thread(method, *args, **options, **self._credentials())
        except CloudinaryError as e:
            logger.error("Asset host %s failed: %s", action, str(e))
            raise AssetHostError(
                context={"action": action, "reason": type(e).__name__},
            ) from e

        if not isinstance(result, dict):
            logger.error("Asset host %s returned %s", action, type(result).__name__)
            raise AssetHostError(context={"action": action, "reason": "invalid_response"})
        return result

    async def upload(
        self,
        data: Union[bytes, str],
        folder: str,
        filename: Optional[str] = None,
    ) -> AssetUpload:
        started = time.perf_counter()

        # Data URIs are sent as-is; raw bytes go up as a file object
        payload: Any = BytesIO(data) if isinstance(data, bytes) else data
        options: Dict[str, Any] = {
            "folder": folder,
            "resource_type": "image",
            "transformation": UPLOAD_TRANSFORMATION,
        }
        if filename:
            options["filename"] = filename

        body = await self._call("upload", payload, **options)
        try:
            result = AssetUpload(
                url=body["secure_url"],
                public_id=body["public_id"],
                width=int(body["width"]),
                height=int(body["height"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.error("Asset host upload response missing fields: %s", sorted(body))
            raise AssetHostError(context={"action": "upload", "reason": "invalid_response"}) from e

        logger.info(
            "Uploaded asset %s to '%s' (%dx%d) in %.0fms",
            result.public_id, folder, result.width, result.height,
            (time.perf_counter() - started) * 1000,
        )
        return result

    async def destroy(self, public_id: str) -> None:
        body = await self._call("destroy", public_id, resource_type="image")
        outcome = body.get("result")
        if outcome == "not found":
            logger.warning("Asset %s was already absent on the host", public_id)
        elif outcome != "ok":
            raise AssetHostError(
                message="Failed to delete image",
                context={"action": "destroy", "public_id": public_id, "result": outcome},
            )
        else:
            logger.info("Destroyed asset %s", public_id)


# ── Singleton Instance ────────────────────────────────────────────────────
asset_host = CloudinaryAssetHost(
    cloud_name=settings.cloudinary_cloud_name,
    api_key=settings.cloudinary_api_key,
    api_secret=settings.cloudinary_api_secret,
    timeout=settings.asset_timeout,
)
