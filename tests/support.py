"""Shared constants and builders for the test suite."""

from procure_kernel.domain.documents import LineItem

BUYER_ORG = "org-buyer-001"
SELLER_ORG = "org-seller-001"
STRANGER_ORG = "org-stranger-999"


def make_line(product_name="Steel Rod", quantity="10", unit_price="90", uom="PCS", **kwargs):
    """A priced line; pass ``unit_price=None`` for an unpriced one."""
    return LineItem(
        product_name=product_name,
        quantity=quantity,
        unit_price=unit_price,
        uom=uom,
        **kwargs,
    )
