"""Exclusion of an owner from a special charge."""

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from copro.models import Base, BaseModel


class ChargeExclusion(Base, BaseModel):
    """Owner not liable for a charges_speciales charge.

    Attributes:
        charge_id: Excluded-from charge
        owner_id: Owner who does not pay this charge
        motif: Optional reason (e.g. new owner not bound by an earlier vote)
    """

    __tablename__ = "charge_exclusions"

    charge_id: Mapped[int] = mapped_column(
        ForeignKey("charge_definitions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    owner_id: Mapped[int] = mapped_column(
        ForeignKey("owners.id", ondelete="CASCADE"), nullable=False, index=True
    )
    motif: Mapped[str | None] = mapped_column(String(255), nullable=True)

    charge: Mapped["ChargeDefinition"] = relationship(  # noqa: F821
        "ChargeDefinition", back_populates="exclusions"
    )
    owner: Mapped["Owner"] = relationship("Owner")  # noqa: F821

    __table_args__ = (UniqueConstraint("charge_id", "owner_id", name="uq_exclusion_charge_owner"),)

    def __repr__(self) -> str:
        return f"<ChargeExclusion(charge_id={self.charge_id}, owner_id={self.owner_id})>"


__all__ = ["ChargeExclusion"]
