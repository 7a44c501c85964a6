"""SQLAlchemy models."""

from quickorder.models.product import Product
from quickorder.models.webphoto import WebPhoto
from quickorder.models.category_relation import CategorySubcategoryRelation
from quickorder.models.device import PushToken, BadgeCount

__all__ = [
    "Product",
    "WebPhoto",
    "CategorySubcategoryRelation",
    "PushToken",
    "BadgeCount",
]
