"""Billing call (appels de charges) API routes: generation, listing and payments."""

import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from copro.api.deps import RequestContext, get_request_context
from copro.api.schemas import (
    BillingCallResponse,
    GenerateCallsPayload,
    GenerationResponse,
    RecordPaymentPayload,
)
from copro.models.billing_call import CallStatus
from copro.services import get_db
from copro.services.billing_service import BillingService, GenerationResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["appels-charges"])


def _billing_service(db: Session, context: RequestContext) -> BillingService:
    return BillingService(db, due_date_offset_days=context.settings.due_date_offset_days)


def _generation_response(result: GenerationResult, context: RequestContext) -> GenerationResponse:
    return GenerationResponse(
        nb_created=len(result.created),
        nb_skipped=len(result.skipped),
        created=[BillingCallResponse.from_call(call, context.today) for call in result.created],
        skipped=[BillingCallResponse.from_call(call, context.today) for call in result.skipped],
    )


@router.post(
    "/charges-recurrentes/{charge_id}/appels",
    response_model=GenerationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def generate_charge_calls(
    charge_id: int,
    payload: GenerateCallsPayload,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> GenerationResponse:
    """Materialize the billing calls of one charge over a window.

    Periods already billed are reported under "skipped" and left untouched.

    Returns:
        201: GenerationResponse
        404: Charge not found
        409: Concurrent generation of the same calls
        422: Inverted window or inactive charge
    """
    result = _billing_service(db, context).generate_billing_calls(
        charge_id, payload.periode_debut, payload.periode_fin, actor_id=context.actor_id
    )
    return _generation_response(result, context)


@router.post(
    "/immeubles/{building_id}/charges-recurrentes/generer-appels",
    response_model=GenerationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def generate_building_calls(
    building_id: int,
    payload: GenerateCallsPayload,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> GenerationResponse:
    """Materialize the billing calls of every active charge of a building over a window."""
    result = _billing_service(db, context).generate_building_calls(
        building_id, payload.periode_debut, payload.periode_fin, actor_id=context.actor_id
    )
    return _generation_response(result, context)


@router.get("/immeubles/{building_id}/appels-charges", response_model=list[BillingCallResponse])
async def list_calls(
    building_id: int,
    annee: int | None = Query(None, description="Year of the period start"),
    proprietaire_id: int | None = Query(None),
    statut: CallStatus | None = Query(None),
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> list[BillingCallResponse]:
    """List a building's billing calls, newest period first, with their status at as_of."""
    calls = _billing_service(db, context).list_calls(
        building_id,
        annee=annee,
        owner_id=proprietaire_id,
        statut=statut,
        as_of=context.today,
    )
    return [BillingCallResponse.from_call(call, context.today) for call in calls]


@router.post("/appels-charges/{call_id}/paiements", response_model=BillingCallResponse)
async def record_payment(
    call_id: int,
    payload: RecordPaymentPayload,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> BillingCallResponse:
    """Record a (partial) payment on a billing call.

    Returns:
        200: Updated BillingCallResponse
        404: Billing call not found
        409: Payment exceeds the amount still owed
        422: Non-positive amount
    """
    call = _billing_service(db, context).record_payment(
        call_id,
        payload.montant,
        reference=payload.reference,
        paid_at=payload.date_paiement,
        actor_id=context.actor_id,
    )
    return BillingCallResponse.from_call(call, context.today)
