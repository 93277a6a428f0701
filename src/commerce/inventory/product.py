"""Product aggregate: the sellable item a batch belongs to.

`slug` is the identifier callers use: it is stable across price changes and
unrelated to the internal row id.
"""

from enum import Enum

from protean.fields import DateTime, Float, String

from commerce.domain import commerce
from commerce.utils.clock import utcnow


class ProductCategory(Enum):
    POWER = "POWER"
    ENERGY = "ENERGY"
    PROTOTYPE = "PROTOTYPE"


@commerce.aggregate
class Product:
    slug = String(required=True, max_length=100, unique=True)
    name = String(required=True, max_length=255)
    price = Float(required=True, min_value=0.0)
    category = String(choices=ProductCategory, default=ProductCategory.POWER.value)
    created_at = DateTime()

    @classmethod
    def register(cls, slug, name, price, category=ProductCategory.POWER.value):
        return cls(
            slug=slug.strip().lower(),
            name=name,
            price=price,
            category=category,
            created_at=utcnow(),
        )

    @property
    def is_prototype(self) -> bool:
        return self.category == ProductCategory.PROTOTYPE.value
