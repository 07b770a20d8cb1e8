"""Exercise (exercice) ORM model: an accounting year of a building."""

from datetime import date

from sqlalchemy import Date, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from copro.models import Base, BaseModel


class Exercise(Base, BaseModel):
    """Accounting period to which charges and billing calls may be scoped."""

    __tablename__ = "exercises"

    building_id: Mapped[int] = mapped_column(
        ForeignKey("buildings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    annee: Mapped[int] = mapped_column(Integer, nullable=False)
    date_debut: Mapped[date] = mapped_column(Date, nullable=False)
    date_fin: Mapped[date] = mapped_column(Date, nullable=False)

    building: Mapped["Building"] = relationship(  # noqa: F821
        "Building",
        back_populates="exercises",
    )

    __table_args__ = (UniqueConstraint("building_id", "annee", name="uq_exercise_building_year"),)

    def __repr__(self) -> str:
        return f"<Exercise(id={self.id}, building_id={self.building_id}, annee={self.annee})>"


__all__ = ["Exercise"]
