"""
Composite score selection.

Pillars arrive precomputed from the analytics pipeline together with
per-mode metrics. This module only picks or weighs them for display.

Given identical inputs, every function here returns the same result.
"""

from typing import Iterable, List, Optional, Tuple

from .schema import CandidateScore, WeightVector

MODES = ("balanced", "merit", "integrity", "custom")
DEFAULT_MODE = "balanced"

PRESETS = {
    "balanced": WeightVector(wC=0.45, wI=0.45, wT=0.10),
    "merit": WeightVector(wC=0.60, wI=0.30, wT=0.10),
    "integrity": WeightVector(wC=0.30, wI=0.60, wT=0.10),
}


def resolve_mode(mode: Optional[str], weights: Optional[WeightVector] = None) -> str:
    """Map any requested mode onto one the composer knows."""
    if not isinstance(mode, str):
        return DEFAULT_MODE
    mode = (mode or DEFAULT_MODE).strip().lower()
    if mode not in MODES:
        return DEFAULT_MODE
    if mode == "custom" and weights is None:
        return DEFAULT_MODE
    return mode


def preset_weights(mode: str) -> WeightVector:
    return PRESETS.get(resolve_mode(mode), PRESETS[DEFAULT_MODE])


def _three_pillar(scores: CandidateScore, weights: WeightVector) -> float:
    return (
        weights.wC * scores.competence
        + weights.wI * scores.integrity
        + weights.wT * scores.transparency
    )


def _precomputed(scores: CandidateScore, mode: str) -> float:
    value = getattr(scores, f"score_{mode}")
    if value is not None:
        return value
    # Metric column not populated yet; derive it from the preset
    return _three_pillar(scores, PRESETS[mode])


def compose_score(
    scores: CandidateScore,
    mode: Optional[str] = DEFAULT_MODE,
    weights: Optional[WeightVector] = None,
) -> float:
    """
    Composite score for one candidate under a scoring mode.

    Args:
        scores: Pillars and precomputed metrics
        mode: "merit", "integrity", "balanced" or "custom"; anything else is balanced
        weights: Only read in custom mode; used as given

    Returns:
        The composite score. Output range is whatever the pillar scale is.
    """
    mode = resolve_mode(mode, weights)

    if scores.plan_viability is not None:
        if mode == "custom":
            return _three_pillar(scores, weights) + weights.wP * scores.plan_viability
        specialized = getattr(scores, f"score_{mode}_p")
        if specialized is not None:
            return specialized
        return _precomputed(scores, mode)

    if mode == "custom":
        # Viability term dropped, not zero-weighted; weights stay as supplied
        return _three_pillar(scores, weights)
    return _precomputed(scores, mode)


def rank_candidates(
    entries: Iterable[Tuple[str, CandidateScore]],
    mode: Optional[str] = DEFAULT_MODE,
    weights: Optional[WeightVector] = None,
) -> List[Tuple[str, float]]:
    """Order (candidate_id, scores) pairs by composite score, best first.

    Ties keep their input order.
    """
    scored = [(cid, compose_score(s, mode, weights)) for cid, s in entries]
    return sorted(scored, key=lambda pair: pair[1], reverse=True)
