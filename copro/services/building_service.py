"""Building, owner and exercise management service."""

import logging
from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session

from copro.models.building import Building
from copro.models.exercise import Exercise
from copro.models.owner import Owner
from copro.services.allocation_service import fits_scale
from copro.services.errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

MILLIEMES_PLACES = 2


class BuildingService:
    """Service for building, owner and exercise database operations.

    These records are the inputs of the apportionment engine; they are read fresh
    on every request and never cached.
    """

    def __init__(self, db_session: Session):
        """Initialize with database session."""
        self.db = db_session

    def get_building(self, building_id: int) -> Building:
        """Get building by ID.

        Raises:
            NotFoundError: If the building does not exist
        """
        building = self.db.query(Building).filter(Building.id == building_id).first()
        if building is None:
            raise NotFoundError(f"Building {building_id} not found")
        return building

    def create_building(
        self,
        nom: str,
        adresse: str | None = None,
        nombre_total_parts: Decimal = Decimal("1000"),
    ) -> Building:
        """Create a building."""
        if nombre_total_parts <= 0:
            raise ValidationError("nombre_total_parts must be positive")
        if not fits_scale(Decimal(nombre_total_parts), MILLIEMES_PLACES):
            raise ValidationError(
                f"nombre_total_parts must have at most {MILLIEMES_PLACES} decimal places"
            )

        building = Building(nom=nom, adresse=adresse, nombre_total_parts=nombre_total_parts)
        self.db.add(building)
        self.db.commit()
        self.db.refresh(building)

        logger.info("Created building: id=%d, nom=%s", building.id, nom)
        return building

    def list_owners(self, building_id: int) -> list[Owner]:
        """List owners of a building ordered by name.

        Raises:
            NotFoundError: If the building does not exist
        """
        self.get_building(building_id)
        return (
            self.db.query(Owner)
            .filter(Owner.building_id == building_id)
            .order_by(Owner.nom, Owner.prenom, Owner.id)
            .all()
        )

    def get_owner(self, building_id: int, owner_id: int) -> Owner:
        """Get an owner of a building.

        Raises:
            NotFoundError: If the owner does not exist or belongs to another building
        """
        owner = (
            self.db.query(Owner)
            .filter(Owner.id == owner_id, Owner.building_id == building_id)
            .first()
        )
        if owner is None:
            raise NotFoundError(f"Owner {owner_id} not found in building {building_id}")
        return owner

    def add_owner(
        self,
        building_id: int,
        nom: str,
        milliemes: Decimal,
        prenom: str | None = None,
        email: str | None = None,
    ) -> Owner:
        """Add an owner to a building.

        Raises:
            NotFoundError: If the building does not exist
            ValidationError: If milliemes is negative or has more than 2 decimal places
        """
        self.get_building(building_id)
        if milliemes < 0:
            raise ValidationError("milliemes must not be negative")
        if not fits_scale(Decimal(milliemes), MILLIEMES_PLACES):
            raise ValidationError(f"milliemes must have at most {MILLIEMES_PLACES} decimal places")

        owner = Owner(
            building_id=building_id,
            nom=nom,
            prenom=prenom,
            email=email,
            milliemes=milliemes,
        )
        self.db.add(owner)
        self.db.commit()
        self.db.refresh(owner)

        logger.info(
            "Added owner: id=%d, building_id=%d, milliemes=%s", owner.id, building_id, milliemes
        )
        return owner

    def get_exercise(self, building_id: int, exercise_id: int) -> Exercise:
        """Get an exercise of a building.

        Raises:
            NotFoundError: If the exercise does not exist in this building
        """
        exercise = (
            self.db.query(Exercise)
            .filter(Exercise.id == exercise_id, Exercise.building_id == building_id)
            .first()
        )
        if exercise is None:
            raise NotFoundError(f"Exercise {exercise_id} not found in building {building_id}")
        return exercise

    def create_exercise(
        self,
        building_id: int,
        annee: int,
        date_debut: date | None = None,
        date_fin: date | None = None,
    ) -> Exercise:
        """Create an accounting exercise; defaults to the calendar year.

        Raises:
            NotFoundError: If the building does not exist
            ValidationError: If date_fin is before date_debut
            ConflictError: If the building already has an exercise for this year
        """
        self.get_building(building_id)
        date_debut = date_debut or date(annee, 1, 1)
        date_fin = date_fin or date(annee, 12, 31)
        if date_fin < date_debut:
            raise ValidationError("date_fin must not be before date_debut")

        existing = (
            self.db.query(Exercise)
            .filter(Exercise.building_id == building_id, Exercise.annee == annee)
            .first()
        )
        if existing:
            raise ConflictError(f"Exercise {annee} already exists for building {building_id}")

        exercise = Exercise(
            building_id=building_id,
            annee=annee,
            date_debut=date_debut,
            date_fin=date_fin,
        )
        self.db.add(exercise)
        self.db.commit()
        self.db.refresh(exercise)

        logger.info("Created exercise: id=%d, building_id=%d, annee=%d", exercise.id, building_id, annee)
        return exercise


__all__ = ["BuildingService"]
