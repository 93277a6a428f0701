"""Volume discount rule: a percentage off unit prices from a quantity upwards."""

from protean.exceptions import ValidationError
from protean.fields import Boolean, Float, Integer

from commerce.domain import commerce


def _check_percent(discount_percent):
    if discount_percent is None or not 0 < discount_percent <= 100:
        raise ValidationError({"discount_percent": ["Discount must be above 0 and at most 100 percent"]})


@commerce.aggregate
class VolumeDiscount:
    min_quantity = Integer(required=True, min_value=1, unique=True)
    discount_percent = Float(required=True, min_value=0.0, max_value=100.0)
    active = Boolean(default=True)

    @classmethod
    def define(cls, min_quantity, discount_percent):
        _check_percent(discount_percent)
        return cls(min_quantity=min_quantity, discount_percent=discount_percent, active=True)

    def redefine(self, discount_percent):
        """Change the percentage, reactivating a retired tier."""
        _check_percent(discount_percent)
        self.discount_percent = discount_percent
        self.active = True

    def deactivate(self):
        self.active = False
