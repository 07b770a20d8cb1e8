"""Building (immeuble) ORM model: the co-owned property charges are billed for."""

from decimal import Decimal

from sqlalchemy import Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from copro.models import Base, BaseModel


class Building(Base, BaseModel):
    """Model representing a co-owned building.

    The nombre_total_parts field is the nominal millième basis of the building
    (usually 1000). Apportionment itself always uses the millièmes actually held
    by the liable owners, so this figure is informational.
    """

    __tablename__ = "buildings"

    nom: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    adresse: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )
    nombre_total_parts: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("1000"),
        comment="Nominal millieme basis of the building",
    )

    # Relationships
    owners: Mapped[list["Owner"]] = relationship(  # noqa: F821
        "Owner",
        back_populates="building",
        cascade="all, delete-orphan",
        order_by="Owner.id",
    )
    exercises: Mapped[list["Exercise"]] = relationship(  # noqa: F821
        "Exercise",
        back_populates="building",
        cascade="all, delete-orphan",
    )
    charges: Mapped[list["ChargeDefinition"]] = relationship(  # noqa: F821
        "ChargeDefinition",
        back_populates="building",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return (
            f"<Building(id={self.id}, nom={self.nom!r}, "
            f"nombre_total_parts={self.nombre_total_parts})>"
        )


__all__ = ["Building"]
