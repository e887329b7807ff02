"""Fulfillment Module: delivery notes and packing lists."""

from procure_modules.fulfillment.models import (
    DeliveryNote,
    DeliveryNoteStatus,
    PackingList,
    PackingListStatus,
)
from procure_modules.fulfillment.workflows import (
    DELIVERY_NOTE_WORKFLOW,
    PACKING_LIST_WORKFLOW,
)

__all__ = [
    "DeliveryNote",
    "DeliveryNoteStatus",
    "PackingList",
    "PackingListStatus",
    "DELIVERY_NOTE_WORKFLOW",
    "PACKING_LIST_WORKFLOW",
]
