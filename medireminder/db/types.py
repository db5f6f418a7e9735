# medireminder/db/types.py
from sqlalchemy import String
from sqlalchemy.types import TypeDecorator

from medireminder.core.image_ref import ExternalImage, LocalImage, parse_image_ref


class ImageRefType(TypeDecorator):
    """Stores LocalImage / ExternalImage as the plain path or URL string."""

    impl = String(500)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, (LocalImage, ExternalImage)):
            return str(value)
        raise TypeError(f"Expected LocalImage or ExternalImage, got {type(value).__name__}")

    def process_result_value(self, value, dialect):
        return parse_image_ref(value)
