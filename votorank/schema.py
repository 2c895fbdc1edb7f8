"""
Canonical data types shared by the normalizer, the scoring composer and
the media reconciliation job.
"""

import math
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

DEFAULT_CURRENCY = "PEN"


def to_amount(value: Any) -> float:
    """Coerce a raw numeric field to a non-negative float.

    Scrapers emit negative error sentinels (-1, -3, -9) and occasionally
    strings or garbage; all of those collapse to a value >= 0.
    """
    if isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return max(0.0, number)


def to_year(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        year = int(str(value).strip()[:4])
    except (TypeError, ValueError):
        return None
    return year if year > 0 else None


@dataclass(frozen=True)
class AssetItem:
    type: str
    description: str
    value: float
    currency: str = DEFAULT_CURRENCY

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AssetItem":
        return cls(
            type=str(data.get("type") or ""),
            description=str(data.get("description") or ""),
            value=to_amount(data.get("value")),
            currency=str(data.get("currency") or DEFAULT_CURRENCY),
        )


@dataclass(frozen=True)
class IncomeBreakdown:
    annual_income: float
    public_income: float = 0.0
    private_income: float = 0.0
    source: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "IncomeBreakdown":
        return cls(
            annual_income=to_amount(data.get("annual_income")),
            public_income=to_amount(data.get("public_income")),
            private_income=to_amount(data.get("private_income")),
            source=str(data.get("source") or ""),
        )


@dataclass(frozen=True)
class CanonicalDeclaration:
    """Schema-uniform asset and income disclosure."""

    assets: List[AssetItem] = field(default_factory=list)
    total_value: float = 0.0
    total_liabilities: Optional[float] = None
    income: Optional[IncomeBreakdown] = None
    declaration_year: Optional[int] = None
    has_declaration: bool = True

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CanonicalDeclaration":
        """Rebuild from the dict form, clamping amounts on the way in."""
        assets = [
            AssetItem.from_dict(item)
            for item in data.get("assets") or []
            if isinstance(item, Mapping)
        ]
        if data.get("total_value") is not None:
            total_value = to_amount(data.get("total_value"))
        else:
            total_value = sum(a.value for a in assets)
        liabilities = data.get("total_liabilities")
        income = data.get("income")
        has_declaration = data.get("has_declaration")
        if has_declaration is None:
            has_declaration = bool(assets) or isinstance(income, Mapping) or bool(data.get("source"))
        return cls(
            assets=assets,
            total_value=total_value,
            total_liabilities=to_amount(liabilities) if liabilities is not None else None,
            income=IncomeBreakdown.from_dict(income) if isinstance(income, Mapping) else None,
            declaration_year=to_year(data.get("declaration_year")),
            has_declaration=bool(has_declaration),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class WeightVector:
    """Custom-mode weights. Used exactly as given, never renormalized."""

    wC: float
    wI: float
    wT: float
    wP: float = 0.0

    @classmethod
    def parse(cls, text: str) -> "WeightVector":
        """Parse "wC,wI,wT[,wP]" as typed on the command line."""
        parts = [p.strip() for p in text.split(",") if p.strip()]
        if len(parts) not in (3, 4):
            raise ValueError("weights must be 'wC,wI,wT' or 'wC,wI,wT,wP'")
        values = [float(p) for p in parts]
        return cls(*values)


@dataclass
class CandidateScore:
    """Pillars computed upstream plus the precomputed per-mode metrics."""

    competence: float
    integrity: float
    transparency: float
    plan_viability: Optional[float] = None
    score_balanced: Optional[float] = None
    score_merit: Optional[float] = None
    score_integrity: Optional[float] = None
    score_balanced_p: Optional[float] = None
    score_merit_p: Optional[float] = None
    score_integrity_p: Optional[float] = None


class MediaState(str, Enum):
    UNVERIFIED = "unverified"
    VERIFIED = "verified"
    BROKEN = "broken"
    REPAIRED = "repaired"
    NULLED = "nulled"


_TRANSITIONS = {
    MediaState.UNVERIFIED: {MediaState.VERIFIED, MediaState.BROKEN},
    MediaState.BROKEN: {MediaState.REPAIRED, MediaState.NULLED},
    MediaState.VERIFIED: set(),
    MediaState.REPAIRED: set(),
    MediaState.NULLED: set(),
}


@dataclass
class MediaReference:
    """A candidate's photo URL and where it stands in the current run."""

    candidate_id: str
    url: Optional[str]
    national_id: Optional[str] = None
    full_name: str = ""
    state: MediaState = MediaState.UNVERIFIED
    original_url: Optional[str] = None
    strategy: Optional[str] = None

    def __post_init__(self):
        if self.original_url is None:
            self.original_url = self.url

    def advance(self, state: MediaState) -> None:
        """Move forward in the lifecycle; backward or sideways moves raise."""
        if state not in _TRANSITIONS[self.state]:
            raise ValueError(f"Cannot move media reference from {self.state.value} to {state.value}")
        self.state = state

    def mark_verified(self) -> None:
        self.advance(MediaState.VERIFIED)

    def mark_broken(self) -> None:
        self.advance(MediaState.BROKEN)

    def mark_repaired(self, url: str, strategy: str) -> None:
        self.advance(MediaState.REPAIRED)
        self.url = url
        self.strategy = strategy

    def mark_nulled(self) -> None:
        # Absent is a clean UI state (initials), unlike a broken image
        self.advance(MediaState.NULLED)
        self.url = None


def validate_weights(weights: WeightVector, with_plan: bool = False) -> List[str]:
    """
    Returns advisory messages about a custom weight vector. Empty list means
    it looks sane. Nothing here changes or rejects the weights.
    """
    warnings: List[str] = []
    named = {"wC": weights.wC, "wI": weights.wI, "wT": weights.wT}
    if with_plan:
        named["wP"] = weights.wP

    for name, value in named.items():
        if value < 0:
            warnings.append(f"Weight '{name}' is negative ({value})")

    total = sum(named.values())
    if abs(total - 1.0) > 0.001:
        warnings.append(f"Weights sum to {round(total, 3)}, not 1.0")

    return warnings
