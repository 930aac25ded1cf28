"""
Variant Generator
Produces fixed-width resized copies of an assembled image with Pillow.
"""

import hashlib
import io
import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from PIL import Image
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.models import ImageVariant, Upload
from ..storage.blob_store import LocalBlobStore, StoragePaths

logger = logging.getLogger(__name__)

DEFAULT_WIDTHS = (256, 512, 1024)

_EXTENSIONS = {"JPEG": "jpg", "PNG": "png", "WEBP": "webp"}


@dataclass
class RenderedVariant:
    """Encoded variant bytes with their dimensions."""

    data: bytes
    width: int
    height: int


def scaled_size(size: Tuple[int, int], target_width: int) -> Tuple[int, int]:
    """Size at target_width with the aspect ratio kept (height rounded, at least 1)."""
    width, height = size
    return target_width, max(1, round(height * target_width / width))


class VariantGenerator:
    """
    Renders and records variants for an upload.

    Every (upload, width) pair is created only if absent, so repeated or
    partial runs converge on exactly one row per width.
    """

    def __init__(
        self,
        store: LocalBlobStore,
        widths: Sequence[int] = DEFAULT_WIDTHS,
        image_format: str = "JPEG",
        quality: int = 90,
    ):
        self.store = store
        self.widths = list(widths)
        self.image_format = image_format.upper()
        self.quality = quality
        self.extension = _EXTENSIONS.get(self.image_format, self.image_format.lower())

    def render(self, source: bytes, target_width: int) -> RenderedVariant:
        """Decode source, resize to target_width keeping aspect ratio, encode."""
        with Image.open(io.BytesIO(source)) as image:
            image.load()
            new_size = scaled_size(image.size, target_width)
            resized = image.resize(new_size, Image.Resampling.LANCZOS)

        resized = self._prepare_mode(resized)
        out = io.BytesIO()
        save_kwargs = {"format": self.image_format}
        if self.image_format in ("JPEG", "WEBP"):
            save_kwargs["quality"] = self.quality
        resized.save(out, **save_kwargs)
        return RenderedVariant(data=out.getvalue(), width=new_size[0], height=new_size[1])

    def generate(self, session: Session, upload: Upload, source: bytes) -> int:
        """
        Create any missing variants for an upload.

        Returns:
            Number of variant rows created by this call
        """
        existing = set(
            session.execute(
                select(ImageVariant.variant).where(ImageVariant.upload_id == upload.id)
            ).scalars()
        )

        created = 0
        for width in self.widths:
            label = str(width)
            if label in existing:
                logger.debug(f"Variant {label} already exists for upload {upload.id}")
                continue

            path = StoragePaths.variant(upload.id, width, self.extension)
            rendered = self._stored_or_render(path, source, width)

            session.add(
                ImageVariant(
                    upload_id=upload.id,
                    path=path,
                    width=rendered.width,
                    height=rendered.height,
                    variant=label,
                    checksum=hashlib.sha256(rendered.data).hexdigest(),
                )
            )
            session.flush()
            created += 1
            logger.info(
                f"Created variant {label} for upload {upload.id}: {rendered.width}x{rendered.height}"
            )

        return created

    def _stored_or_render(self, path: str, source: bytes, width: int) -> RenderedVariant:
        """Reuse a blob left by an earlier run; otherwise render and store it."""
        if not self.store.exists(path):
            rendered = self.render(source, width)
            if self.store.put_if_absent(path, rendered.data):
                return rendered

        data = self.store.get(path)
        stored = self._describe(data)
        if stored is None:
            # Unreadable leftover, replace it
            rendered = self.render(source, width)
            self.store.put(path, rendered.data)
            return rendered
        return stored

    def _describe(self, data: bytes) -> Optional[RenderedVariant]:
        try:
            with Image.open(io.BytesIO(data)) as image:
                image.load()
                width, height = image.size
        except (OSError, ValueError):
            return None
        return RenderedVariant(data=data, width=width, height=height)

    def _prepare_mode(self, image: Image.Image) -> Image.Image:
        """Flatten transparency onto white for formats without alpha."""
        if self.image_format != "JPEG":
            return image
        if image.mode in ("RGBA", "LA", "P"):
            if image.mode == "P":
                image = image.convert("RGBA")
            background = Image.new("RGB", image.size, (255, 255, 255))
            background.paste(image, mask=image.split()[-1])
            return background
        if image.mode != "RGB":
            return image.convert("RGB")
        return image
