"""Recurring charge catalog and repartition API routes."""

import logging

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from copro.api.deps import RequestContext, get_request_context
from copro.api.schemas import (
    ChargeResponse,
    CreateChargePayload,
    RepartitionResponse,
    UpdateChargePayload,
)
from copro.services import get_db
from copro.services.charge_service import ChargeService, ExclusionInput, QuotaInput
from copro.services.repartition_service import RepartitionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/immeubles/{building_id}/charges-recurrentes", tags=["charges"])


def _exclusions(payloads) -> list[ExclusionInput] | None:
    if payloads is None:
        return None
    return [ExclusionInput(owner_id=item.proprietaire_id, motif=item.motif) for item in payloads]


def _quotas(payloads) -> list[QuotaInput] | None:
    if payloads is None:
        return None
    return [QuotaInput(owner_id=item.proprietaire_id, quote_part=item.quote_part) for item in payloads]


@router.get("", response_model=list[ChargeResponse])
async def list_charges(building_id: int, db: Session = Depends(get_db)) -> list[ChargeResponse]:
    """List the building's charges in catalog order."""
    charges = ChargeService(db).list_charges(building_id)
    return [ChargeResponse.model_validate(charge) for charge in charges]


@router.post("", response_model=ChargeResponse, status_code=status.HTTP_201_CREATED)
async def create_charge(
    building_id: int,
    payload: CreateChargePayload,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> ChargeResponse:
    """Create a recurring charge with its exclusions and quotes-parts.

    Returns:
        201: ChargeResponse
        404: Building, exercise or referenced owner not found
        422: Invalid charge configuration
    """
    charge = ChargeService(db).create_charge(
        building_id,
        type=payload.type,
        libelle=payload.libelle,
        montant_annuel=payload.montant_annuel,
        description=payload.description,
        frequence=payload.frequence,
        cle_repartition=payload.cle_repartition,
        actif=payload.actif,
        date_debut=payload.date_debut,
        date_fin=payload.date_fin,
        exercise_id=payload.exercise_id,
        exclusions=_exclusions(payload.exclusions),
        quotes_parts=_quotas(payload.quotes_parts),
        actor_id=context.actor_id,
    )
    return ChargeResponse.model_validate(charge)


@router.get("/repartition", response_model=RepartitionResponse)
async def get_repartition(
    building_id: int,
    exercise_id: int | None = Query(None, description="Restrict to one exercise"),
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> RepartitionResponse:
    """Per-owner annual and monthly liability for the charges active at as_of."""
    result = RepartitionService(db).compute_repartition(
        building_id, as_of=context.today, exercise_id=exercise_id
    )
    return RepartitionResponse.model_validate(result)


@router.put("/{charge_id}", response_model=ChargeResponse)
async def update_charge(
    building_id: int,
    charge_id: int,
    payload: UpdateChargePayload,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> ChargeResponse:
    """Partially update a charge; exclusions and quotes-parts, when sent, replace the existing sets."""
    fields = payload.model_dump(exclude_unset=True, exclude={"exclusions", "quotes_parts"})
    charge = ChargeService(db).update_charge(
        building_id,
        charge_id,
        exclusions=_exclusions(payload.exclusions),
        quotes_parts=_quotas(payload.quotes_parts),
        actor_id=context.actor_id,
        **fields,
    )
    return ChargeResponse.model_validate(charge)


@router.delete("/{charge_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_charge(
    building_id: int,
    charge_id: int,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> Response:
    """Delete a charge.

    Returns:
        204: Deleted
        404: Charge not found in this building
        409: Some billing calls of the charge carry payments
    """
    ChargeService(db).delete_charge(building_id, charge_id, actor_id=context.actor_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
