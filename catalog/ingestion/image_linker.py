"""
Image Linker
Resolves filename hints from the CSV against completed uploads and points
products at the largest variant.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from ..db.models import ImageVariant, Product, Upload, UPLOAD_COMPLETED
from ..models.errors import LinkResolutionMiss, NotFoundError, UploadNotReadyError
from ..models.summary import ImportRun

logger = logging.getLogger(__name__)


def _stem(filename: str) -> str:
    return os.path.splitext(filename)[0].lower()


@dataclass
class UploadIndex:
    """Completed uploads keyed three ways. The lowest upload id wins a clash."""

    uploads: List[Upload]
    by_name: Dict[str, Upload] = field(default_factory=dict)
    by_lower_name: Dict[str, Upload] = field(default_factory=dict)
    by_stem: Dict[str, Upload] = field(default_factory=dict)

    def __post_init__(self):
        for upload in self.uploads:
            self.by_name.setdefault(upload.original_name, upload)
            self.by_lower_name.setdefault(upload.original_name.lower(), upload)
            self.by_stem.setdefault(_stem(upload.original_name), upload)


Matcher = Callable[[UploadIndex, str], Optional[Upload]]


def match_exact(index: UploadIndex, filename: str) -> Optional[Upload]:
    return index.by_name.get(filename)


def match_case_insensitive(index: UploadIndex, filename: str) -> Optional[Upload]:
    return index.by_lower_name.get(filename.lower())


def match_without_extension(index: UploadIndex, filename: str) -> Optional[Upload]:
    """'photo' and 'photo.png' both match 'Photo.jpg'."""
    return index.by_stem.get(_stem(filename))


# Tried in order; the first hit wins
MATCHERS: Sequence[Matcher] = (match_exact, match_case_insensitive, match_without_extension)


def load_completed_uploads(session: Session) -> UploadIndex:
    """Load every completed upload with its variants in one round trip."""
    uploads = session.execute(
        select(Upload)
        .where(Upload.status == UPLOAD_COMPLETED)
        .options(selectinload(Upload.images))
        .order_by(Upload.id)
    ).scalars().all()
    return UploadIndex(uploads=list(uploads))


class ImageLinker:
    """Links products to images by filename, once per import batch."""

    def __init__(self, matchers: Sequence[Matcher] = MATCHERS):
        self.matchers = list(matchers)

    def resolve(self, index: UploadIndex, filename: str) -> Optional[Upload]:
        for matcher in self.matchers:
            upload = matcher(index, filename)
            if upload is not None:
                return upload
        return None

    def link(self, session: Session, image_links: Dict[str, str], run: ImportRun) -> None:
        """
        Link images for one batch, inside the caller's transaction.

        Args:
            session: Session holding the batch transaction
            image_links: SKU -> filename, in encounter order
            run: Import state; counts and issues are recorded on it
        """
        image_links = {sku: name for sku, name in image_links.items() if name}
        if not image_links:
            return

        index = load_completed_uploads(session)
        products = {
            product.sku: product
            for product in session.execute(
                select(Product).where(Product.sku.in_(list(image_links)))
            ).scalars()
        }

        for sku, filename in image_links.items():
            product = products.get(sku)
            if product is None:
                continue

            try:
                image = self._resolve_variant(index, sku, filename)
            except LinkResolutionMiss as miss:
                run.summary.images_not_found += 1
                run.issue(miss.message)
                logger.warning(miss.message)
                continue

            if product.primary_image_id == image.id:
                continue

            product.primary_image_id = image.id
            run.summary.images_linked += 1
            logger.debug(f"Linked image {image.id} ({filename}) to product {sku}")

        session.flush()

    def _resolve_variant(self, index: UploadIndex, sku: str, filename: str) -> ImageVariant:
        upload = self.resolve(index, filename)
        if upload is None:
            raise LinkResolutionMiss(sku, filename, "upload not completed or doesn't exist")

        image = upload.largest_variant()
        if image is None:
            raise LinkResolutionMiss(sku, filename, "no image variants for upload")
        return image


def attach_image(session: Session, product_id: int, upload_id: int) -> Dict:
    """
    Attach an upload's largest variant to a product as its primary image.

    Raises:
        NotFoundError: if the product or upload does not exist
        UploadNotReadyError: if the upload is not completed or has no variants
    """
    product = session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product", product_id)

    upload = session.get(Upload, upload_id)
    if upload is None:
        raise NotFoundError("Upload", upload_id)

    if upload.status != UPLOAD_COMPLETED:
        raise UploadNotReadyError(
            "Upload is not yet completed",
            details={"upload_id": upload_id, "status": upload.status},
        )

    image = upload.largest_variant()
    if image is None:
        raise UploadNotReadyError("No images found for this upload", details={"upload_id": upload_id})

    changed = product.primary_image_id != image.id
    if changed:
        product.primary_image_id = image.id
        session.flush()
        logger.info(f"Attached image {image.id} (upload {upload_id}) to product {product.sku}")

    return {
        "product": {
            "id": product.id,
            "sku": product.sku,
            "name": product.name,
            "price": str(product.price),
            "primary_image_id": product.primary_image_id,
        },
        "image": {
            "id": image.id,
            "upload_id": image.upload_id,
            "variant": image.variant,
            "path": image.path,
            "width": image.width,
            "height": image.height,
        },
        "changed": changed,
    }
