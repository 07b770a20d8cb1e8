"""Pydantic request and response schemas of the charges API."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from copro.models.billing_call import BillingCall, CallStatus, PaymentState
from copro.models.charge import ChargeType, Frequency, RepartitionKey
from copro.services.charge_service import NON_NULLABLE_FIELDS

NOT_NULL_UPDATE_FIELDS = NON_NULLABLE_FIELDS | {"exclusions", "quotes_parts"}


class RequestPayload(BaseModel):
    """Base of every request body: unknown fields are rejected."""

    model_config = ConfigDict(extra="forbid")


# Buildings, owners, exercises


class CreateBuildingPayload(RequestPayload):
    """Request payload for POST /api/immeubles."""

    nom: str = Field(..., min_length=1, description="Building name")
    adresse: str | None = Field(None, description="Postal address")
    nombre_total_parts: Decimal = Field(Decimal("1000"), gt=0, description="Nominal millième basis")


class BuildingResponse(BaseModel):
    """Response schema for a building."""

    id: int
    nom: str
    adresse: str | None = None
    nombre_total_parts: Decimal

    model_config = ConfigDict(from_attributes=True)


class CreateOwnerPayload(RequestPayload):
    """Request payload for POST /api/immeubles/{id}/proprietaires."""

    nom: str = Field(..., min_length=1)
    prenom: str | None = None
    email: str | None = None
    milliemes: Decimal = Field(..., ge=0, description="Ownership weight in millièmes")


class OwnerResponse(BaseModel):
    """Response schema for an owner."""

    id: int
    building_id: int
    nom: str
    prenom: str | None = None
    email: str | None = None
    milliemes: Decimal

    model_config = ConfigDict(from_attributes=True)


class CreateExercisePayload(RequestPayload):
    """Request payload for POST /api/immeubles/{id}/exercices."""

    annee: int = Field(..., ge=1900, le=2999)
    date_debut: date | None = None
    date_fin: date | None = None


class ExerciseResponse(BaseModel):
    """Response schema for an accounting exercise."""

    id: int
    building_id: int
    annee: int
    date_debut: date
    date_fin: date

    model_config = ConfigDict(from_attributes=True)


# Charge catalog


class ExclusionPayload(RequestPayload):
    """Owner excluded from a special charge."""

    proprietaire_id: int
    motif: str | None = None


class QuotaPayload(RequestPayload):
    """Quote-part of an owner in a custom charge."""

    proprietaire_id: int
    quote_part: Decimal


class CreateChargePayload(RequestPayload):
    """Request payload for POST /api/immeubles/{id}/charges-recurrentes."""

    type: ChargeType
    libelle: str = Field(..., min_length=1)
    description: str | None = None
    montant_annuel: Decimal = Field(..., ge=0)
    frequence: Frequency = Frequency.TRIMESTRIEL
    cle_repartition: RepartitionKey = RepartitionKey.MILLIEMES
    actif: bool = True
    date_debut: date | None = None
    date_fin: date | None = None
    exercise_id: int | None = None
    exclusions: list[ExclusionPayload] = Field(default_factory=list)
    quotes_parts: list[QuotaPayload] = Field(default_factory=list)


class UpdateChargePayload(RequestPayload):
    """Request payload for PUT /api/immeubles/{id}/charges-recurrentes/{charge_id}.

    Only the fields present in the body are changed. Omit a field to keep it;
    null is only accepted for optional fields (description, dates, exercise_id).
    Send an empty list to clear exclusions or quotes-parts.
    """

    type: ChargeType | None = None
    libelle: str | None = Field(None, min_length=1)
    description: str | None = None
    montant_annuel: Decimal | None = Field(None, ge=0)
    frequence: Frequency | None = None
    cle_repartition: RepartitionKey | None = None
    actif: bool | None = None
    date_debut: date | None = None
    date_fin: date | None = None
    exercise_id: int | None = None
    exclusions: list[ExclusionPayload] | None = None
    quotes_parts: list[QuotaPayload] | None = None

    @model_validator(mode="after")
    def reject_explicit_nulls(self) -> "UpdateChargePayload":
        nulls = sorted(
            name
            for name in self.model_fields_set & NOT_NULL_UPDATE_FIELDS
            if getattr(self, name) is None
        )
        if nulls:
            raise ValueError(f"Fields cannot be null: {', '.join(nulls)}")
        return self


class ExclusionResponse(BaseModel):
    proprietaire_id: int = Field(validation_alias=AliasChoices("owner_id", "proprietaire_id"))
    motif: str | None = None

    model_config = ConfigDict(from_attributes=True)


class QuotaResponse(BaseModel):
    proprietaire_id: int = Field(validation_alias=AliasChoices("owner_id", "proprietaire_id"))
    quote_part: Decimal

    model_config = ConfigDict(from_attributes=True)


class ChargeResponse(BaseModel):
    """Response schema for a recurring charge with its exclusions and quotes-parts."""

    id: int
    building_id: int
    exercise_id: int | None = None
    type: ChargeType
    libelle: str
    description: str | None = None
    montant_annuel: Decimal
    frequence: Frequency
    cle_repartition: RepartitionKey
    actif: bool
    date_debut: date | None = None
    date_fin: date | None = None
    exclusions: list[ExclusionResponse] = Field(default_factory=list)
    quotes_parts: list[QuotaResponse] = Field(
        default_factory=list, validation_alias=AliasChoices("quotas", "quotes_parts")
    )
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# Repartition (camelCase on the wire)


class CamelResponse(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class ChargeLineResponse(CamelResponse):
    charge_id: int
    type: ChargeType
    libelle: str
    frequence: Frequency
    montant_annuel: Decimal
    montant_periodique: Decimal


class OwnerRepartitionResponse(CamelResponse):
    proprietaire_id: int
    prenom: str | None = None
    nom: str
    milliemes: Decimal
    total_annuel: Decimal
    total_mensuel: Decimal
    charges: list[ChargeLineResponse]


class ChargeAllocationResponse(CamelResponse):
    charge_id: int
    montant_annuel: Decimal
    allocated: Decimal
    unallocated: Decimal


class RepartitionResponse(CamelResponse):
    """Per-owner liability table of a building."""

    total_milliemes: Decimal
    repartition: list[OwnerRepartitionResponse]
    totaux: dict[str, Decimal]
    nb_proprietaires: int
    nb_charges_actives: int
    charges: list[ChargeAllocationResponse]


# Billing calls


class GenerateCallsPayload(RequestPayload):
    """Billing window of a generation request (both bounds inclusive)."""

    periode_debut: date
    periode_fin: date


class BillingCallResponse(BaseModel):
    """Response schema for a billing call; statut and est_en_retard are computed at read time."""

    id: int
    charge_id: int
    proprietaire_id: int
    exercise_id: int | None = None
    periode_debut: date
    periode_fin: date
    montant_appele: Decimal
    montant_paye: Decimal
    montant_restant: Decimal
    payment_state: PaymentState
    statut: CallStatus
    est_en_retard: bool
    date_echeance: date
    date_paiement: datetime | None = None
    reference_paiement: str | None = None
    notes: str | None = None

    @classmethod
    def from_call(cls, call: BillingCall, as_of: date) -> "BillingCallResponse":
        """Build the response, projecting the status at as_of."""
        return cls(
            id=call.id,
            charge_id=call.charge_id,
            proprietaire_id=call.owner_id,
            exercise_id=call.exercise_id,
            periode_debut=call.periode_debut,
            periode_fin=call.periode_fin,
            montant_appele=call.montant_appele,
            montant_paye=call.montant_paye,
            montant_restant=call.montant_restant,
            payment_state=call.payment_state,
            statut=call.statut(as_of),
            est_en_retard=call.is_overdue(as_of),
            date_echeance=call.date_echeance,
            date_paiement=call.date_paiement,
            reference_paiement=call.reference_paiement,
            notes=call.notes,
        )


class GenerationResponse(BaseModel):
    """Outcome of a generation request."""

    nb_created: int
    nb_skipped: int
    created: list[BillingCallResponse]
    skipped: list[BillingCallResponse]


class RecordPaymentPayload(RequestPayload):
    """Request payload for POST /api/appels-charges/{call_id}/paiements."""

    montant: Decimal = Field(..., description="Amount paid (positive, cents precision)")
    reference: str | None = Field(None, max_length=100)
    date_paiement: datetime | None = None
