"""Owner (propriétaire) ORM model holding a millième share of a building."""

from decimal import Decimal

from sqlalchemy import ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from copro.models import Base, BaseModel


class Owner(Base, BaseModel):
    """Model representing a co-owner of a building.

    The milliemes field is the owner's proportional share of the building and is
    the default weight for apportioning charges.
    """

    __tablename__ = "owners"

    building_id: Mapped[int] = mapped_column(
        ForeignKey("buildings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    nom: Mapped[str] = mapped_column(String(255), nullable=False)
    prenom: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    milliemes: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0"),
        comment="Share of the building used for millieme repartition",
    )

    # Relationships
    building: Mapped["Building"] = relationship(  # noqa: F821
        "Building",
        back_populates="owners",
    )

    __table_args__ = (Index("idx_owner_building_nom", "building_id", "nom"),)

    def __repr__(self) -> str:
        return (
            f"<Owner(id={self.id}, building_id={self.building_id}, "
            f"nom={self.nom!r}, prenom={self.prenom!r}, milliemes={self.milliemes})>"
        )


__all__ = ["Owner"]
