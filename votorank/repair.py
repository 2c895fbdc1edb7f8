"""
Alternate-URL strategies for broken media references.

Each strategy derives one candidate URL from a reference, or raises
ConfigurationMissing when the input it needs is absent. ``attempt_repair``
walks them in order and stops at the first URL that probes as reachable.
"""

import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from .config import NATIONAL_ID_TEMPLATE, TOKEN_TEMPLATE
from .errors import ConfigurationMissing
from .logger import get_logger
from .prober import ProbeResult
from .schema import MediaReference

logger = get_logger()

# 8-4-4-4-12 hex GUID embedded in document-service photo URLs
TOKEN_PATTERN = re.compile(r"([0-9a-f-]{36})", re.IGNORECASE)

ProbeFn = Callable[[str], ProbeResult]


@dataclass(frozen=True)
class RepairStrategy:
    name: str
    derive: Callable[[MediaReference], str]


@dataclass(frozen=True)
class RepairOutcome:
    strategy: str
    url: str
    probe: ProbeResult


def extract_token(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    match = TOKEN_PATTERN.search(url)
    return match.group(1) if match else None


def national_id_strategy(template: str = NATIONAL_ID_TEMPLATE) -> RepairStrategy:
    """Photo by national identifier on the voter-information host."""

    def derive(reference: MediaReference) -> str:
        dni = (reference.national_id or "").strip()
        if not dni:
            raise ConfigurationMissing("no national identifier")
        return template.format(dni=dni)

    return RepairStrategy("national_id", derive)


def embedded_token_strategy(template: str = TOKEN_TEMPLATE) -> RepairStrategy:
    """Photo by the GUID embedded in the original URL, on the electoral platform host."""

    def derive(reference: MediaReference) -> str:
        token = extract_token(reference.original_url)
        if token is None:
            raise ConfigurationMissing("no embedded token in original URL")
        return template.format(token=token)

    return RepairStrategy("embedded_token", derive)


def default_strategies(
    national_id_template: str = NATIONAL_ID_TEMPLATE,
    token_template: str = TOKEN_TEMPLATE,
) -> List[RepairStrategy]:
    """Strategies in priority order."""
    return [
        national_id_strategy(national_id_template),
        embedded_token_strategy(token_template),
    ]


def attempt_repair(
    reference: MediaReference,
    probe: ProbeFn,
    strategies: Sequence[RepairStrategy],
) -> Optional[RepairOutcome]:
    """
    Try each strategy in order; return the first reachable alternative.

    Strategies lacking their input are skipped. A derived URL equal to the
    broken one is not re-probed.
    """
    for strategy in strategies:
        try:
            url = strategy.derive(reference)
        except ConfigurationMissing as e:
            logger.debug(
                "Repair strategy skipped",
                candidate_id=reference.candidate_id,
                strategy=strategy.name,
                reason=str(e),
            )
            continue

        if url == reference.original_url:
            continue

        logger.record_repair_attempt(strategy.name)
        result = probe(url)
        if result.reachable:
            logger.record_repair_success(strategy.name)
            return RepairOutcome(strategy.name, url, result)

        logger.debug(
            "Repair candidate unreachable",
            candidate_id=reference.candidate_id,
            strategy=strategy.name,
            url=url,
            status=result.status,
        )

    return None
