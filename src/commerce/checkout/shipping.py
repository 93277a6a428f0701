"""Shipping snapshot: the delivery details a customer typed at checkout.

Copied onto the Order when it is finalized so later edits to the cart never
change where a paid order ships to. The cost is whatever the storefront
quoted; it is carried, never computed here.
"""

from protean.fields import Float, String

from commerce.domain import commerce


@commerce.value_object
class ShippingSnapshot:
    name = String(max_length=200)
    line1 = String(max_length=255)
    line2 = String(max_length=255)
    city = String(max_length=100)
    postal_code = String(max_length=20)
    country = String(max_length=2, default="GB")
    phone = String(max_length=30)
    cost = Float(default=0.0, min_value=0.0)


SHIPPING_FIELDS = ("name", "line1", "line2", "city", "postal_code", "country", "phone", "cost")


def shipping_fields(data: dict | None) -> dict | None:
    """Keep only the keys a ShippingSnapshot knows; None when nothing is left."""
    if not data:
        return None
    kept = {key: data[key] for key in SHIPPING_FIELDS if data.get(key) is not None}
    return kept or None
