"""SQLAlchemy base model with common fields and model exports."""

from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

# Base class for all models
Base = declarative_base()


class BaseModel:
    """Base model with common timestamp fields."""

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )


# Import models to register them with Base (after Base is defined)
# This must be after Base declaration to avoid circular imports
from copro.models.audit_log import AuditLog  # noqa: E402
from copro.models.billing_call import BillingCall, PaymentState  # noqa: E402
from copro.models.building import Building  # noqa: E402
from copro.models.charge import (  # noqa: E402
    ChargeDefinition,
    ChargeType,
    Frequency,
    RepartitionKey,
)
from copro.models.charge_exclusion import ChargeExclusion  # noqa: E402
from copro.models.custom_quota import CustomQuota  # noqa: E402
from copro.models.exercise import Exercise  # noqa: E402
from copro.models.owner import Owner  # noqa: E402

__all__ = [
    "Base",
    "BaseModel",
    "AuditLog",
    "BillingCall",
    "PaymentState",
    "Building",
    "ChargeDefinition",
    "ChargeType",
    "Frequency",
    "RepartitionKey",
    "ChargeExclusion",
    "CustomQuota",
    "Exercise",
    "Owner",
]
