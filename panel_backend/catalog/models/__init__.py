# catalog/models/__init__.py

from .category import ServiceCategory
from .service import Service

__all__ = ["ServiceCategory", "Service"]
