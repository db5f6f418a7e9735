# medireminder/core/image_ref.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

URL_SCHEMES = ("http://", "https://")


@dataclass(frozen=True)
class LocalImage:
    """Attachment written to the server's upload directory."""

    path: str

    @property
    def filename(self) -> str:
        return Path(self.path).name

    def __str__(self) -> str:
        return self.path


@dataclass(frozen=True)
class ExternalImage:
    """Client supplied URL, stored verbatim and never fetched."""

    url: str

    def __str__(self) -> str:
        return self.url


ImageRef = Union[LocalImage, ExternalImage]


def is_external_url(value: str) -> bool:
    return value.lower().startswith(URL_SCHEMES)


def parse_image_ref(value: Optional[str]) -> Optional[ImageRef]:
    """Classify a stored image pointer. Empty values mean no image."""
    if not value:
        return None
    if is_external_url(value):
        return ExternalImage(value)
    return LocalImage(value)
