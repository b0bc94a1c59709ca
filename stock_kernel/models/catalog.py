"""
Module: stock_kernel.models.catalog
Responsibility: ORM persistence for the identity tables every ledger row
    references -- parts and storage locations.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - part_code is unique (uq_part_code).
    - location_code is unique (uq_location_code).

Failure modes:
    - IntegrityError on duplicate business key; CatalogService translates it
      to DuplicateCatalogKeyError.

Audit relevance:
    Descriptive attributes never participate in ledger arithmetic.  Deleting
    a part or a location removes its inventory rows, moves and count records
    through ON DELETE CASCADE on the referencing foreign keys.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Index, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import Base

# Descriptive part columns that callers may set or update.
PART_ATTRIBUTES: tuple[str, ...] = (
    "color",
    "category",
    "job_number",
    "width",
    "length",
    "thickness",
    "brand",
    "pallet",
    "unit",
)

LOCATION_ATTRIBUTES: tuple[str, ...] = ("location_type", "zone")


class Part(Base):
    """
    A distinct stock-keeping unit.

    Contract:
        ``part_code`` is the business key printed on labels and used by
        receiving to find an existing part.  ``id`` is the surrogate key
        every other table references.
    """

    __tablename__ = "parts"

    __table_args__ = (
        UniqueConstraint("part_code", name="uq_part_code"),
        Index("idx_part_category", "category"),
    )

    part_code: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    color: Mapped[str | None] = mapped_column(String(100), nullable=True)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    job_number: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Dimensions (width/length in the unit of the part, thickness in mm)
    width: Mapped[Decimal | None] = mapped_column(Numeric(12, 3), nullable=True)
    length: Mapped[Decimal | None] = mapped_column(Numeric(12, 3), nullable=True)
    thickness: Mapped[Decimal | None] = mapped_column(Numeric(12, 3), nullable=True)

    brand: Mapped[str | None] = mapped_column(String(100), nullable=True)
    pallet: Mapped[str | None] = mapped_column(String(100), nullable=True)
    unit: Mapped[str | None] = mapped_column(String(50), nullable=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<Part {self.part_code}: {self.name}>"


class Location(Base):
    """A named place where inventory physically sits."""

    __tablename__ = "locations"

    __table_args__ = (
        UniqueConstraint("location_code", name="uq_location_code"),
        Index("idx_location_zone", "zone"),
    )

    location_code: Mapped[str] = mapped_column(String(100), nullable=False)

    # Free-form tags (e.g. "rack", "floor", a material category)
    location_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    zone: Mapped[str | None] = mapped_column(String(100), nullable=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<Location {self.location_code}>"
