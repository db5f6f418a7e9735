# medireminder/core/attachments.py
"""
Storage of medicament images.

A medicament image is either a file this service wrote into the upload
directory (LocalImage) or a URL the client gave us (ExternalImage). This module
owns the files: it validates and writes uploads, removes superseded or orphaned
ones, and turns a stored reference into the URL clients should fetch.
"""
import logging
import re
import secrets
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional
from urllib.parse import urlparse

from starlette.datastructures import UploadFile

from medireminder.config.settings import Settings
from medireminder.core.exceptions import InvalidInput, PayloadTooLarge, UnsupportedMediaType
from medireminder.core.image_ref import ExternalImage, ImageRef, LocalImage, is_external_url

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024
MAX_NAME_LENGTH = 100
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass(frozen=True)
class ResolvedImage:
    """Outcome of reconciling a request's image intent with storage.

    ref/public_url describe the image the record should carry. `changed` tells
    whether the stored pointer must be rewritten. `written` is a file created
    by this request (remove it if the database write fails) and `replaced` is
    the previous local file (remove it once the database write succeeded).
    """

    ref: Optional[ImageRef]
    public_url: Optional[str]
    changed: bool = True
    written: Optional[LocalImage] = None
    replaced: Optional[LocalImage] = None


def normalize_external_url(value: Optional[str]) -> Optional[str]:
    """Trimmed http(s) URL, or None when nothing was supplied."""
    if value is None:
        return None
    url = value.strip()
    if not url:
        return None
    parsed = urlparse(url)
    if not is_external_url(url) or not parsed.netloc:
        raise InvalidInput("image_url must be an absolute http(s) URL")
    return url


def sanitize_filename(filename: Optional[str]) -> str:
    name = Path(filename or "").name
    name = _UNSAFE_CHARS.sub("_", name).strip("._")
    return name[-MAX_NAME_LENGTH:] or "image"


class AttachmentManager:
    def __init__(
        self,
        directory: Path,
        base_url: str,
        max_bytes: int,
        allowed_types: Iterable[str],
        chunk_size: int = CHUNK_SIZE,
    ):
        self.directory = Path(directory).resolve()
        self.base_url = base_url.rstrip("/")
        self.max_bytes = max_bytes
        self.allowed_types = {t.lower() for t in allowed_types}
        self.chunk_size = chunk_size

    @classmethod
    def from_settings(cls, settings: Settings) -> "AttachmentManager":
        return cls(
            directory=settings.upload_dir,
            base_url=settings.media_base_url,
            max_bytes=settings.max_upload_bytes,
            allowed_types=settings.allowed_image_types,
        )

    def ensure_directory(self) -> None:
        if not self.directory.exists():
            self.directory.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created upload directory {self.directory}")

    # ------------------------------------------------------------------ urls --
    def public_url(self, ref: Optional[ImageRef]) -> Optional[str]:
        """URL a client can fetch. Never exposes a filesystem path."""
        if ref is None:
            return None
        if isinstance(ref, ExternalImage):
            return ref.url
        return f"{self.base_url}/{ref.filename}"

    # --------------------------------------------------------------- uploads --
    def generate_filename(self, owner_id: int, filename: Optional[str]) -> str:
        # time + owner + random suffix keeps concurrent uploads apart
        return f"{time.time_ns()}_{owner_id}_{secrets.token_hex(4)}_{sanitize_filename(filename)}"

    async def save_upload(self, upload: UploadFile, owner_id: int) -> LocalImage:
        """
        Validate and write an uploaded image into the upload directory.

        Raises UnsupportedMediaType or PayloadTooLarge. A partially written file
        is removed before the error propagates.
        """
        content_type = (upload.content_type or "").split(";")[0].strip().lower()
        if content_type not in self.allowed_types:
            logger.info(f"Rejected upload with content type '{content_type}'")
            raise UnsupportedMediaType()
        if upload.size is not None and upload.size > self.max_bytes:
            raise PayloadTooLarge(self._too_large_message())

        self.ensure_directory()
        path = self.directory / self.generate_filename(owner_id, upload.filename)
        written = 0
        fh = open(path, "xb")
        try:
            with fh:
                while chunk := await upload.read(self.chunk_size):
                    written += len(chunk)
                    if written > self.max_bytes:
                        raise PayloadTooLarge(self._too_large_message())
                    fh.write(chunk)
        except Exception:
            self._remove(path)
            raise

        logger.info(f"Stored upload {path.name} ({written} bytes) for user_id={owner_id}")
        return LocalImage(str(path))

    def _too_large_message(self) -> str:
        return f"File cannot be larger than {self.max_bytes // (1024 * 1024)}MB"

    # ------------------------------------------------------------- reconcile --
    async def resolve_for_create(
        self,
        owner_id: int,
        upload: Optional[UploadFile] = None,
        external_url: Optional[str] = None,
    ) -> ResolvedImage:
        """An upload wins over a URL; with neither the record has no image."""
        if upload is not None:
            ref = await self.save_upload(upload, owner_id)
            return ResolvedImage(ref=ref, public_url=self.public_url(ref), written=ref)

        url = normalize_external_url(external_url)
        if url:
            return ResolvedImage(ref=ExternalImage(url), public_url=url)

        return ResolvedImage(ref=None, public_url=None)

    async def resolve_for_update(
        self,
        existing: Optional[ImageRef],
        owner_id: int,
        upload: Optional[UploadFile] = None,
        external_url: Optional[str] = None,
        remove: bool = False,
    ) -> ResolvedImage:
        """
        Work out the image an updated record should carry.

        A new upload or URL replaces the existing image; `remove` clears it;
        otherwise the existing reference passes through unchanged. A replaced
        local file is reported in `replaced` rather than deleted here, so the
        caller removes it only after the record points at the new image.
        """
        replaced = existing if isinstance(existing, LocalImage) else None

        if upload is not None or normalize_external_url(external_url):
            resolved = await self.resolve_for_create(owner_id, upload, external_url)
            return ResolvedImage(
                ref=resolved.ref,
                public_url=resolved.public_url,
                written=resolved.written,
                replaced=replaced,
            )

        if remove:
            return ResolvedImage(ref=None, public_url=None, replaced=replaced)

        return ResolvedImage(ref=existing, public_url=self.public_url(existing), changed=False)

    # --------------------------------------------------------------- cleanup --
    def delete_artifact(self, ref: Optional[ImageRef]) -> bool:
        """
        Remove a local artifact. External URLs and missing files are no-ops.

        Returns True if a file was removed.
        """
        if not isinstance(ref, LocalImage):
            return False
        path = Path(ref.path).resolve()
        if path.parent != self.directory:
            logger.warning(f"Refusing to delete {path}: outside upload directory {self.directory}")
            return False
        return self._remove(path)

    def discard(self, resolved: ResolvedImage) -> None:
        """Undo the file side effect of a request whose database write failed."""
        if resolved.written is not None:
            self.delete_artifact(resolved.written)

    def _remove(self, path: Path) -> bool:
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        logger.info(f"Removed attachment {path.name}")
        return True
