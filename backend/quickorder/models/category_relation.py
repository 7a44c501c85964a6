"""Category/subcategory relations - drive the subcategory filters shown per category."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from quickorder.database import Base


class CategorySubcategoryRelation(Base):
    """A category/subcategory pair that can be switched off without deleting it."""

    __tablename__ = "category_subcategory_relations"
    __table_args__ = (
        UniqueConstraint("category", "subcategory", name="uq_category_subcategory"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    category: Mapped[str] = mapped_column(String(255), nullable=False)
    subcategory: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return (
            f"<CategorySubcategoryRelation(id='{self.id}', category='{self.category}', "
            f"subcategory='{self.subcategory}')>"
        )
