"""
Dry-run audit of declaration normalization across the stored population.

Reads every raw disclosure, normalizes it, and counts what came out.
Nothing is written back.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Iterable, Tuple

from .logger import get_logger
from .normalize import declaration_shape_name, normalize_declaration

logger = get_logger()

# Raw numeric fields the scrapers are known to fill with negative sentinels
RAW_NUMERIC_FIELDS = (
    "total",
    "total_assets",
    "total_liabilities",
    "total_income",
    "real_estate_total",
    "real_estate_count",
    "vehicle_total",
    "vehicle_count",
    "public_salary",
    "public_rent",
    "other_public",
    "private_salary",
    "private_rent",
    "other_private",
)


@dataclass
class AuditStats:
    total: int = 0
    normalized: int = 0
    no_data: int = 0
    shapes: Dict[str, int] = field(default_factory=dict)
    with_assets: int = 0
    with_income: int = 0
    with_income_breakdown: int = 0
    with_liabilities: int = 0
    with_year: int = 0
    raw_negative_values: int = 0
    negative_after_normalization: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


def _count_raw_negatives(raw: Any) -> int:
    if not isinstance(raw, dict):
        return 0
    count = 0
    for name in RAW_NUMERIC_FIELDS:
        value = raw.get(name)
        if isinstance(value, (int, float)) and not isinstance(value, bool) and value < 0:
            count += 1
    return count


def audit_declarations(rows: Iterable[Tuple[str, Any]]) -> AuditStats:
    """
    Normalize every (candidate_id, raw) pair and tally the results.

    Args:
        rows: e.g. ``CandidateStore.iter_declarations()``

    Returns:
        AuditStats; ``negative_after_normalization`` must always be 0.
    """
    stats = AuditStats()

    for candidate_id, raw in rows:
        stats.total += 1
        shape = declaration_shape_name(raw)
        stats.shapes[shape] = stats.shapes.get(shape, 0) + 1
        stats.raw_negative_values += _count_raw_negatives(raw)

        declaration = normalize_declaration(raw)
        if declaration is None:
            stats.no_data += 1
            continue

        stats.normalized += 1
        if declaration.assets:
            stats.with_assets += 1
        if declaration.income is not None:
            stats.with_income += 1
            if declaration.income.public_income > 0 or declaration.income.private_income > 0:
                stats.with_income_breakdown += 1
        if declaration.total_liabilities:
            stats.with_liabilities += 1
        if declaration.declaration_year is not None:
            stats.with_year += 1

        amounts = [a.value for a in declaration.assets] + [declaration.total_value]
        if declaration.total_liabilities is not None:
            amounts.append(declaration.total_liabilities)
        if declaration.income is not None:
            amounts.extend([
                declaration.income.annual_income,
                declaration.income.public_income,
                declaration.income.private_income,
            ])
        if any(v < 0 for v in amounts):
            stats.negative_after_normalization += 1
            logger.error("Normalized declaration holds a negative amount", candidate_id=candidate_id)

    logger.info("Declaration audit complete", **stats.to_dict())
    return stats
