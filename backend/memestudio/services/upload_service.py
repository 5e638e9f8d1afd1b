"""
MemeStudio Backend - Upload Validation
=======================================

What:  Validates template image uploads before they are sent to the asset host.
How:   Cheap checks first, each rejecting with a ValidationError:
           1. extension      (.jpg .jpeg .png .gif)
           2. declared size  (Content-Length header, before reading)
           3. actual size    (non-empty, at most max_upload_size bytes)
           4. content type   (multipart part header)
           5. signature      (libmagic detects the same allowed format)
Who:   TemplateService.upload_template().

Nothing is written to local disk; validated bytes go straight to the host.
"""

import logging
from pathlib import Path
from typing import Optional

import magic

from memestudio.config import settings
from memestudio.exceptions import ValidationError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif"}

ALLOWED_CONTENT_TYPES = {
    "image/jpeg": "jpeg",
    "image/jpg": "jpeg",
    "image/pjpeg": "jpeg",
    "image/png": "png",
    "image/gif": "gif",
}


def detect_mime_type(content: bytes) -> str:
    """MIME type from the file header, e.g. "image/png"."""
    try:
        return magic.from_buffer(content, mime=True)
    except magic.MagicException as e:
        logger.error("MIME type detection failed: %s", str(e))
        raise ValidationError(
            message="Could not verify file type",
            field="image",
            context={"error": str(e)},
        ) from e


class UploadValidator:
    """Rejects uploads that are not small JPEG, PNG or GIF images."""

    def __init__(self, max_size: Optional[int] = None):
        self.max_size = max_size or settings.max_upload_size

    def validate_extension(self, filename: Optional[str]) -> str:
        ext = Path(filename or "").suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    "Invalid file type. Allowed types: "
                    f"{', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="image",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        max_mb = self.max_size / (1024 * 1024)

        if content_length and content_length > self.max_size:
            raise ValidationError(
                message=f"File size exceeds maximum of {max_mb:.0f}MB",
                field="image",
                context={"max_size": self.max_size, "reported_size": content_length},
            )
        if actual_size == 0:
            raise ValidationError(message="Please upload an image", field="image")
        if actual_size > self.max_size:
            raise ValidationError(
                message=f"File size exceeds maximum of {max_mb:.0f}MB",
                field="image",
                context={"max_size": self.max_size, "actual_size": actual_size},
            )

    def validate_content_type(self, content_type: Optional[str], content: bytes) -> str:
        declared = ALLOWED_CONTENT_TYPES.get((content_type or "").split(";")[0].strip().lower())
        if declared is None:
            raise ValidationError(
                message="Invalid file type. Only JPEG, PNG and GIF images are allowed",
                field="image",
                context={"content_type": content_type},
            )

        detected_mime = detect_mime_type(content)
        detected = ALLOWED_CONTENT_TYPES.get(detected_mime)
        if detected != declared:
            logger.warning(
                "Upload content mismatch: declared %s, detected %s", content_type, detected_mime,
            )
            raise ValidationError(
                message="File content does not match its image type",
                field="image",
                context={"declared": declared, "detected": detected_mime},
            )
        return declared

    def validate(
        self,
        filename: Optional[str],
        content_type: Optional[str],
        content: bytes,
        content_length: Optional[int] = None,
    ) -> str:
        """Run every check in order; returns the normalized extension."""
        ext = self.validate_extension(filename)
        self.validate_size(content_length, len(content))
        self.validate_content_type(content_type, content)
        return ext


upload_validator = UploadValidator()
