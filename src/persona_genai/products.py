from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ProductDescription(BaseModel):
    """Ready-made product blurb offered next to the free-text description field."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: int
    title: str
    description: str


DEFAULT_PRODUCT_DESCRIPTIONS: tuple[ProductDescription, ...] = (
    ProductDescription(
        id=1,
        title="Apple Watch Series 10",
        description=(
            "The latest Apple Watch with a thinner, lighter build, advanced health and fitness tracking, a larger "
            "always-on display, and seamless integration with iPhone. Perfect for anyone who wants to stay "
            "connected and healthy on the go."
        ),
    ),
    ProductDescription(
        id=2,
        title="Jabra Elite 8 Active",
        description=(
            "Durable true wireless earbuds with adaptive active noise cancellation, secure fit, and up to 32 hours "
            "of battery life. Designed for athletes and music lovers who need great sound and sweatproof performance."
        ),
    ),
    ProductDescription(
        id=3,
        title="Dr. Dennis Gross DRx SpectraLite FaceWare Pro",
        description=(
            "An FDA-cleared LED face mask that uses red and blue light therapy to reduce wrinkles, clear acne, and "
            "improve skin tone in just a few minutes a day."
        ),
    ),
    ProductDescription(
        id=4,
        title="Charlotte Tilbury Pillow Talk Lipstick",
        description=(
            "A universally flattering, award-winning nude-pink lipstick that delivers a perfect, natural-looking "
            "pout. Loved by celebrities and makeup artists worldwide."
        ),
    ),
    ProductDescription(
        id=5,
        title="Foreo Luna 4",
        description=(
            "A silicone facial cleansing brush that uses T-Sonic pulsations to deeply cleanse and massage the skin, "
            "removing 99% of dirt, oil, and makeup residue for a radiant complexion."
        ),
    ),
)
