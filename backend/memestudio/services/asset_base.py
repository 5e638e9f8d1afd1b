"""
MemeStudio Backend - Abstract Asset Host Interface
===================================================

What:  Contract for the external image host that stores template uploads
       and custom meme images.
How:   Concrete hosts inherit from AssetHost and implement upload(),
       destroy() and is_configured(). Services receive an instance at
       construction, so tests pass an in-memory fake.
Who:   TemplateService (uploads), MemeService (custom images, deletion),
       the health endpoint.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class AssetUpload:
    """Result of a successful upload."""
    url: str
    public_id: str
    width: int
    height: int


class AssetHost(ABC):
    """
    Abstract image host.

    Contract:
        - upload() returns an AssetUpload or raises AssetHostError
        - destroy() is idempotent: deleting an unknown handle succeeds
        - Callers never see provider-specific exceptions
    """

    @abstractmethod
    async def upload(
        self,
        data: Union[bytes, str],
        folder: str,
        filename: Optional[str] = None,
    ) -> AssetUpload:
        """
        Store an image.

        Args:
            data:     Raw file bytes, or a `data:image/...;base64,` URI
            folder:   Logical folder on the host (e.g. "meme-templates")
            filename: Original filename, forwarded for byte uploads

        Raises:
            AssetHostError: The host rejected the upload or was unreachable.
        """
        ...

    @abstractmethod
    async def destroy(self, public_id: str) -> None:
        """
        Delete an image by its host handle.

        Raises:
            AssetHostError: The host could not be reached or refused.
        """
        ...

    @abstractmethod
    def is_configured(self) -> bool:
        """True when credentials are present; reported by GET /health."""
        ...
