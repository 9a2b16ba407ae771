from .models import ServiceItem
from .service import ServiceItemService

__all__ = ["ServiceItem", "ServiceItemService"]
