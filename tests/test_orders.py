"""
Unit tests for order hand-off helpers.
"""

import pytest
from pydantic import ValidationError as ModelValidationError

from frame_studio.models import CustomizationRecord, Transform
from frame_studio.orders import (
    CartItem, ProductImageInfo, collect_product_image_info, create_image_summary,
    format_image_info_for_order_notes, release_customizations
)
from frame_studio.store import CustomizationStore


@pytest.fixture
def store(tmp_path):
    store = CustomizationStore(str(tmp_path / 'customizations.json'))
    store.save('p1', CustomizationRecord(
        original_image_url='https://cdn.example.com/p1-original.png',
        rendered_image_url='https://cdn.example.com/p1-rendered.png',
        cropped_image_url='https://cdn.example.com/p1-cropped.png',
        frame_image_url='https://cdn.example.com/frame.png',
        image_state=Transform(x=200, y=300),
    ))
    return store


@pytest.fixture
def cart_items():
    return [
        {'productId': 'p1', 'title': 'Oak Frame', 'variantTitle': '8x10', 'quantity': 2,
         'image': 'https://cdn.example.com/oak.png', 'price': '29.00'},
        {'productId': 'p2', 'title': 'Walnut Frame', 'variantTitle': 'Default Title'},
    ]


class TestCollectProductImageInfo:
    """Test gathering image URLs for cart items."""

    def test_customized_and_plain_items(self, store, cart_items):
        infos = collect_product_image_info(cart_items, store)

        customized, plain = infos
        assert customized.is_customized
        assert customized.quantity == 2
        assert customized.original_image_url == 'https://cdn.example.com/oak.png'
        assert customized.customized_image_url == 'https://cdn.example.com/p1-rendered.png'
        assert customized.user_uploaded_image_url == 'https://cdn.example.com/p1-original.png'
        assert customized.cropped_image_url == 'https://cdn.example.com/p1-cropped.png'
        assert customized.frame_image_url == 'https://cdn.example.com/frame.png'

        assert not plain.is_customized
        assert plain.quantity == 1
        assert plain.original_image_url is None

    def test_accepts_cart_item_models(self, store):
        item = CartItem(product_id='p1', title='Oak Frame')

        assert collect_product_image_info([item], store)[0].is_customized

    def test_invalid_item(self, store):
        with pytest.raises(ModelValidationError):
            collect_product_image_info([{'title': 'No id'}], store)


class TestOrderText:
    """Test the text attached to orders."""

    def test_display_name(self):
        assert ProductImageInfo('p', 'Oak Frame', 1, variant_title='8x10').display_name == 'Oak Frame - 8x10'
        assert ProductImageInfo('p', 'Oak Frame', 1, variant_title='Default Title').display_name == 'Oak Frame'

    def test_order_notes(self, store, cart_items):
        notes = format_image_info_for_order_notes(collect_product_image_info(cart_items, store))

        assert notes == (
            "1. Oak Frame - 8x10 (Qty: 2)\n"
            "  - User Uploaded Image: https://cdn.example.com/p1-original.png\n"
            "  - Cropped Image: https://cdn.example.com/p1-cropped.png\n"
            "  - Final Customized Image: https://cdn.example.com/p1-rendered.png\n"
            "\n"
            "2. Walnut Frame (Qty: 1)"
        )

    def test_summary(self, store, cart_items):
        summary = create_image_summary(collect_product_image_info(cart_items, store))

        assert summary.splitlines() == [
            "1. Oak Frame (Qty: 2)",
            "   Customized: https://cdn.example.com/p1-rendered.png",
            "   User Upload: https://cdn.example.com/p1-original.png",
            "2. Walnut Frame (Qty: 1)",
        ]

    def test_empty_cart(self):
        assert format_image_info_for_order_notes([]) == ''
        assert create_image_summary([]) == ''


class TestReleaseCustomizations:
    def test_release(self, store):
        removed = release_customizations(store, ['p1', 'p2'])

        assert removed == ['p1']
        assert 'p1' not in store
