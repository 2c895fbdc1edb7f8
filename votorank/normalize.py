"""
Normalization of asset/income disclosures.

Three ingestion generations left three unlabeled payload shapes in the
store. ``classify_declaration`` decides which one a payload is, and
``normalize_declaration`` turns any of them into a CanonicalDeclaration,
or None when the candidate effectively declared nothing.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from .errors import MalformedInput
from .logger import get_logger
from .schema import (
    AssetItem,
    CanonicalDeclaration,
    IncomeBreakdown,
    to_amount,
    to_year,
)

logger = get_logger()

SEED_ASSET_TYPE = "Patrimonio"
SEED_ASSET_DESCRIPTION = "Declaración general"
REAL_ESTATE_TYPE = "Inmuebles"
VEHICLE_TYPE = "Vehículos"

PUBLIC_INCOME_FIELDS = ("public_salary", "public_rent", "other_public")
PRIVATE_INCOME_FIELDS = ("private_salary", "private_rent", "other_private")


@dataclass(frozen=True)
class StructuredDeclaration:
    """Payload already carrying an ordered asset list."""
    payload: Union[Mapping[str, Any], CanonicalDeclaration]


@dataclass(frozen=True)
class SeedDeclaration:
    """Seed-era payload: a single aggregate total."""
    payload: Mapping[str, Any]


@dataclass(frozen=True)
class FlatDeclaration:
    """Scraper payload with separate real-estate, vehicle and income subtotals."""
    payload: Mapping[str, Any]


DeclarationShape = Union[StructuredDeclaration, SeedDeclaration, FlatDeclaration]


def classify_declaration(raw: Any) -> DeclarationShape:
    """Decide which of the three payload shapes ``raw`` is. First match wins.

    Raises:
        MalformedInput: if ``raw`` is not a mapping at all
    """
    if isinstance(raw, CanonicalDeclaration):
        return StructuredDeclaration(raw)
    if not isinstance(raw, Mapping):
        raise MalformedInput(f"Expected a mapping, got {type(raw).__name__}")

    if isinstance(raw.get("assets"), list):
        return StructuredDeclaration(raw)
    if raw.get("total") is not None and not raw.get("real_estate_count") and not raw.get("source"):
        return SeedDeclaration(raw)
    return FlatDeclaration(raw)


def _income_source(public_income: float, private_income: float) -> str:
    if public_income > 0 and private_income > 0:
        return "Sector público y privado"
    if public_income > 0:
        return "Sector público"
    if private_income > 0:
        return "Sector privado"
    return ""


def _sum_fields(raw: Mapping[str, Any], fields) -> float:
    return sum(to_amount(raw.get(f)) for f in fields)


def _from_structured(shape: StructuredDeclaration) -> CanonicalDeclaration:
    if isinstance(shape.payload, CanonicalDeclaration):
        return shape.payload
    return CanonicalDeclaration.from_dict(shape.payload)


def _from_seed(shape: SeedDeclaration) -> Optional[CanonicalDeclaration]:
    total = to_amount(shape.payload.get("total"))
    if total <= 0:
        return None
    return CanonicalDeclaration(
        assets=[AssetItem(SEED_ASSET_TYPE, SEED_ASSET_DESCRIPTION, total)],
        total_value=total,
        has_declaration=True,
    )


def _from_flat(shape: FlatDeclaration) -> Optional[CanonicalDeclaration]:
    raw = shape.payload

    real_estate_total = to_amount(raw.get("real_estate_total"))
    real_estate_count = int(to_amount(raw.get("real_estate_count")))
    vehicle_total = to_amount(raw.get("vehicle_total"))
    vehicle_count = int(to_amount(raw.get("vehicle_count")))

    assets = []
    if real_estate_count > 0 or real_estate_total > 0:
        assets.append(AssetItem(
            REAL_ESTATE_TYPE, f"{real_estate_count} propiedad(es)", real_estate_total,
        ))
    if vehicle_count > 0 or vehicle_total > 0:
        assets.append(AssetItem(
            VEHICLE_TYPE, f"{vehicle_count} vehículo(s)", vehicle_total,
        ))

    public_income = _sum_fields(raw, PUBLIC_INCOME_FIELDS)
    private_income = _sum_fields(raw, PRIVATE_INCOME_FIELDS)
    if raw.get("total_income") is not None:
        total_income = to_amount(raw.get("total_income"))
    else:
        # salary + rent + other, each across both sectors
        total_income = public_income + private_income

    if raw.get("total_assets") is not None:
        total_value = to_amount(raw.get("total_assets"))
    else:
        total_value = real_estate_total + vehicle_total

    liabilities = raw.get("total_liabilities")
    has_source = bool(raw.get("source"))

    if total_value == 0 and total_income == 0 and not assets and not has_source:
        return None

    income = None
    if total_income > 0:
        income = IncomeBreakdown(
            annual_income=total_income,
            public_income=public_income,
            private_income=private_income,
            source=_income_source(public_income, private_income),
        )

    return CanonicalDeclaration(
        assets=assets,
        total_value=total_value,
        total_liabilities=to_amount(liabilities) if liabilities is not None else None,
        income=income,
        declaration_year=to_year(raw.get("income_year")),
        has_declaration=True,
    )


def normalize_declaration(raw: Any) -> Optional[CanonicalDeclaration]:
    """
    Reconcile a raw disclosure into the canonical schema.

    Returns None ("no data") for absent, malformed or empty disclosures.
    Never raises.
    """
    if raw is None:
        return None
    try:
        shape = classify_declaration(raw)
    except MalformedInput as e:
        logger.debug("Ignoring malformed declaration", error=str(e))
        return None

    if isinstance(shape, StructuredDeclaration):
        return _from_structured(shape)
    if isinstance(shape, SeedDeclaration):
        return _from_seed(shape)
    return _from_flat(shape)


def declaration_shape_name(raw: Any) -> str:
    """Shape label used in audit statistics ("structured", "seed", "flat", "malformed")."""
    try:
        shape = classify_declaration(raw)
    except MalformedInput:
        return "malformed"
    if isinstance(shape, StructuredDeclaration):
        return "structured"
    if isinstance(shape, SeedDeclaration):
        return "seed"
    return "flat"
