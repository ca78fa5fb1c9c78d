import logging
import os
import secrets
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from shop_admin.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

# Declared content type accepted for each allowed extension
IMAGE_CONTENT_TYPES = {
    "jpeg": {"image/jpeg"},
    "jpg": {"image/jpeg"},
    "png": {"image/png"},
    "gif": {"image/gif"},
    "webp": {"image/webp"},
}


@dataclass
class ImageUpload:
    filename: str
    content_type: Optional[str]
    data: bytes


class BestEffortRemover:
    """Delete a stored file; failures are logged and never raised."""

    def __call__(self, path: Path) -> bool:
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error(f"Could not delete stored image {path}: {str(e)}")
            return False
        logger.info(f"Deleted stored image {path.name}")
        return True


class StrictRemover:
    """Delete a stored file and let any failure propagate."""

    def __call__(self, path: Path) -> bool:
        path.unlink()
        return True


class ImageStore:
    """
    Product images on the local filesystem, referenced from the store as
    ``<url_path>/<epoch-ms>-<random>.<ext>``.
    """

    def __init__(
        self,
        upload_dir: str,
        url_path: str = "/uploads",
        allowed_extensions: Iterable[str] = ("jpeg", "jpg", "png", "gif", "webp"),
        max_bytes: int = 10 * 1024 * 1024,
        remover=None,
    ):
        self.upload_dir = Path(upload_dir)
        self.url_path = "/" + url_path.strip("/")
        self.allowed_extensions = [ext.lower().lstrip(".") for ext in allowed_extensions]
        self.max_bytes = max_bytes
        self.remover = remover or BestEffortRemover()

    def ensure_directory(self) -> None:
        if not self.upload_dir.exists():
            self.upload_dir.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created upload directory {self.upload_dir}")

    def _allowed_types_message(self) -> str:
        return f"Only images are allowed ({', '.join(self.allowed_extensions)})"

    def validate(self, upload: ImageUpload) -> str:
        """Check an upload against the allow-list and size ceiling; returns its extension."""
        extension = os.path.splitext(upload.filename or "")[1].lower().lstrip(".")
        if extension not in self.allowed_extensions:
            raise ValidationError(self._allowed_types_message())
        content_type = (upload.content_type or "").split(";")[0].strip().lower()
        allowed_types = IMAGE_CONTENT_TYPES.get(extension, {f"image/{extension}"})
        if content_type not in allowed_types:
            raise ValidationError(self._allowed_types_message())
        if not upload.data:
            raise ValidationError("Uploaded image is empty")
        if len(upload.data) > self.max_bytes:
            raise ValidationError(f"Image exceeds the maximum size of {self.max_bytes} bytes")
        return extension

    def unique_name(self, extension: str) -> str:
        return f"{int(time.time() * 1000)}-{secrets.randbelow(10 ** 9)}.{extension}"

    def save(self, upload: ImageUpload) -> str:
        extension = self.validate(upload)
        self.ensure_directory()
        name = self.unique_name(extension)
        path = self.upload_dir / name
        # "xb" never overwrites an existing file
        with open(path, "xb") as f:
            f.write(upload.data)
        logger.info(f"Stored image {name} ({len(upload.data)} bytes)")
        return f"{self.url_path}/{name}"

    def path_for(self, reference: Optional[str]) -> Optional[Path]:
        """Map a stored reference back to its file, or None if it is not ours."""
        if not reference or not reference.startswith(self.url_path + "/"):
            return None
        name = reference[len(self.url_path) + 1:]
        if not name or "/" in name or "\\" in name or name in (".", ".."):
            return None
        return self.upload_dir / name

    def delete(self, reference: Optional[str]) -> bool:
        path = self.path_for(reference)
        if path is None:
            return False
        return self.remover(path)
