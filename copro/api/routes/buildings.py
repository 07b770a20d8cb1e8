"""Building, owner and exercise API routes."""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from copro.api.schemas import (
    BuildingResponse,
    CreateBuildingPayload,
    CreateExercisePayload,
    CreateOwnerPayload,
    ExerciseResponse,
    OwnerResponse,
)
from copro.services import get_db
from copro.services.building_service import BuildingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/immeubles", tags=["immeubles"])


@router.post("", response_model=BuildingResponse, status_code=status.HTTP_201_CREATED)
async def create_building(
    payload: CreateBuildingPayload, db: Session = Depends(get_db)
) -> BuildingResponse:
    """Create a building."""
    building = BuildingService(db).create_building(
        nom=payload.nom,
        adresse=payload.adresse,
        nombre_total_parts=payload.nombre_total_parts,
    )
    return BuildingResponse.model_validate(building)


@router.get("/{building_id}", response_model=BuildingResponse)
async def get_building(building_id: int, db: Session = Depends(get_db)) -> BuildingResponse:
    """Get a building.

    Returns:
        200: BuildingResponse
        404: Building not found
    """
    return BuildingResponse.model_validate(BuildingService(db).get_building(building_id))


@router.get("/{building_id}/proprietaires", response_model=list[OwnerResponse])
async def list_owners(building_id: int, db: Session = Depends(get_db)) -> list[OwnerResponse]:
    """List the owners of a building ordered by name."""
    owners = BuildingService(db).list_owners(building_id)
    return [OwnerResponse.model_validate(owner) for owner in owners]


@router.post(
    "/{building_id}/proprietaires",
    response_model=OwnerResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_owner(
    building_id: int, payload: CreateOwnerPayload, db: Session = Depends(get_db)
) -> OwnerResponse:
    """Add an owner with its millièmes to a building."""
    owner = BuildingService(db).add_owner(
        building_id,
        nom=payload.nom,
        milliemes=payload.milliemes,
        prenom=payload.prenom,
        email=payload.email,
    )
    return OwnerResponse.model_validate(owner)


@router.post(
    "/{building_id}/exercices",
    response_model=ExerciseResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_exercise(
    building_id: int, payload: CreateExercisePayload, db: Session = Depends(get_db)
) -> ExerciseResponse:
    """Open an accounting exercise.

    Returns:
        201: ExerciseResponse
        404: Building not found
        409: Exercise already exists for this year
    """
    exercise = BuildingService(db).create_exercise(
        building_id,
        annee=payload.annee,
        date_debut=payload.date_debut,
        date_fin=payload.date_fin,
    )
    return ExerciseResponse.model_validate(exercise)
