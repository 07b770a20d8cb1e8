"""Custom quota (quote-part) of an owner for a custom-keyed charge."""

from decimal import Decimal

from sqlalchemy import ForeignKey, Numeric, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from copro.models import Base, BaseModel


class CustomQuota(Base, BaseModel):
    """Explicit dimensionless share of one owner in one custom charge."""

    __tablename__ = "custom_quotas"

    charge_id: Mapped[int] = mapped_column(
        ForeignKey("charge_definitions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    owner_id: Mapped[int] = mapped_column(
        ForeignKey("owners.id", ondelete="CASCADE"), nullable=False, index=True
    )
    quote_part: Mapped[Decimal] = mapped_column(Numeric(8, 4), nullable=False)

    charge: Mapped["ChargeDefinition"] = relationship(  # noqa: F821
        "ChargeDefinition", back_populates="quotas"
    )
    owner: Mapped["Owner"] = relationship("Owner")  # noqa: F821

    __table_args__ = (UniqueConstraint("charge_id", "owner_id", name="uq_quota_charge_owner"),)

    def __repr__(self) -> str:
        return (
            f"<CustomQuota(charge_id={self.charge_id}, owner_id={self.owner_id}, "
            f"quote_part={self.quote_part})>"
        )


__all__ = ["CustomQuota"]
