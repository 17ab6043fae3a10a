"""
Order hand-off helpers.

The cart and checkout live elsewhere; at order time they read the saved
artifact URLs from the Customization Store, attach them to the order and
then release the customizations.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from frame_studio.store import CustomizationStore


class CartItem(BaseModel):
    """The fields of a cart line item this module reads."""

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    product_id: str = Field(alias='productId')
    title: str
    variant_title: Optional[str] = Field(default=None, alias='variantTitle')
    quantity: int = 1
    image: Optional[str] = None


@dataclass
class ProductImageInfo:
    product_id: str
    product_title: str
    quantity: int
    variant_title: Optional[str] = None
    original_image_url: Optional[str] = None
    customized_image_url: Optional[str] = None
    user_uploaded_image_url: Optional[str] = None
    cropped_image_url: Optional[str] = None
    frame_image_url: Optional[str] = None

    @property
    def is_customized(self) -> bool:
        return bool(self.user_uploaded_image_url or self.cropped_image_url or self.customized_image_url)

    @property
    def display_name(self) -> str:
        if self.variant_title and self.variant_title != 'Default Title':
            return f"{self.product_title} - {self.variant_title}"
        return self.product_title


def collect_product_image_info(cart_items: Iterable, store: CustomizationStore) -> List[ProductImageInfo]:
    """Collect image URLs for each cart item, including its customization if any."""
    infos = []
    for raw in cart_items:
        item = raw if isinstance(raw, CartItem) else CartItem.model_validate(raw)
        info = ProductImageInfo(
            product_id=item.product_id,
            product_title=item.title,
            variant_title=item.variant_title or None,
            quantity=item.quantity,
            original_image_url=item.image or None,
        )

        record = store.get(item.product_id)
        if record is not None:
            info.customized_image_url = record.rendered_image_url
            info.user_uploaded_image_url = record.original_image_url
            info.cropped_image_url = record.cropped_image_url
            info.frame_image_url = record.frame_image_url

        infos.append(info)
    return infos


def format_image_info_for_order_notes(infos: List[ProductImageInfo]) -> str:
    """Readable order note listing each product and its customization images."""
    sections = []
    for index, info in enumerate(infos, start=1):
        lines = [f"{index}. {info.display_name} (Qty: {info.quantity})"]
        if info.is_customized:
            lines.append(f"  - User Uploaded Image: {info.user_uploaded_image_url or ''}")
            lines.append(f"  - Cropped Image: {info.cropped_image_url or ''}")
            lines.append(f"  - Final Customized Image: {info.customized_image_url or ''}")
        sections.append('\n'.join(lines))
    return '\n\n'.join(sections)


def create_image_summary(infos: List[ProductImageInfo]) -> str:
    """Concise summary of image URLs for quick reference."""
    summaries = []
    for index, info in enumerate(infos, start=1):
        lines = [f"{index}. {info.product_title} (Qty: {info.quantity})"]
        if info.customized_image_url:
            lines.append(f"   Customized: {info.customized_image_url}")
        if info.user_uploaded_image_url:
            lines.append(f"   User Upload: {info.user_uploaded_image_url}")
        summaries.append('\n'.join(lines))
    return '\n'.join(summaries)


def release_customizations(store: CustomizationStore, product_ids: Iterable[str]) -> List[str]:
    """Remove customizations consumed by a placed order. Returns the ids removed."""
    removed = []
    for product_id in product_ids:
        if product_id in store:
            store.remove(product_id)
            removed.append(product_id)
    if removed:
        logger.info(f"Released {len(removed)} customization(s) after order: {', '.join(removed)}")
    return removed
