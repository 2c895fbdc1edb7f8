"""
Candidate store repository.

Responsibilities:
- Read candidate rows, raw disclosures and pillar scores.
- Write back a media reference (string or NULL), one record per commit.

Non-Responsibilities:
- No normalization, scoring or repair decisions.
"""

from typing import Any, Iterator, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .database import Candidate, Score
from .errors import PersistenceFailure
from .schema import CandidateScore, MediaReference


def _to_candidate_score(row: Score) -> CandidateScore:
    return CandidateScore(
        competence=row.competence,
        integrity=row.integrity,
        transparency=row.transparency,
        plan_viability=row.plan_viability,
        score_balanced=row.score_balanced,
        score_merit=row.score_merit,
        score_integrity=row.score_integrity,
        score_balanced_p=row.score_balanced_p,
        score_merit_p=row.score_merit_p,
        score_integrity_p=row.score_integrity_p,
    )


class CandidateStore:
    """Repository over an explicitly passed-in SQLAlchemy session."""

    def __init__(self, session: Session):
        self.session = session

    def load_media_references(
        self,
        party_id: Optional[str] = None,
        active_only: bool = True,
    ) -> List[MediaReference]:
        """Candidates that currently have a photo URL, ordered by name."""
        query = self.session.query(Candidate).filter(Candidate.photo_url.isnot(None))
        if active_only:
            query = query.filter(Candidate.is_active.is_(True))
        if party_id is not None:
            query = query.filter(Candidate.party_id == party_id)

        return [
            MediaReference(
                candidate_id=c.id,
                url=c.photo_url,
                national_id=c.dni,
                full_name=c.full_name,
            )
            for c in query.order_by(Candidate.full_name).all()
        ]

    def update_photo_url(self, candidate_id: str, url: Optional[str]) -> None:
        """
        Persist a repaired URL, or None for an explicitly absent photo.

        Raises:
            PersistenceFailure: if the row is gone or the write is rejected
        """
        try:
            candidate = self.session.get(Candidate, candidate_id)
            if candidate is None:
                raise PersistenceFailure(candidate_id, "candidate not found")
            candidate.photo_url = url
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise PersistenceFailure(candidate_id, str(e)) from e

    def iter_declarations(self) -> Iterator[Tuple[str, Any]]:
        """Yield (candidate_id, raw disclosure) for every row that has one."""
        query = (
            self.session.query(Candidate.id, Candidate.assets_declaration)
            .filter(Candidate.assets_declaration.isnot(None))
            .order_by(Candidate.id)
        )
        for candidate_id, raw in query:
            yield candidate_id, raw

    def get_declaration(self, candidate_id: str) -> Any:
        candidate = self.session.get(Candidate, candidate_id)
        return candidate.assets_declaration if candidate is not None else None

    def get_score(self, candidate_id: str) -> Optional[CandidateScore]:
        row = self.session.query(Score).filter_by(candidate_id=candidate_id).first()
        return _to_candidate_score(row) if row is not None else None

    def list_scores(
        self,
        cargo: Optional[str] = None,
        party_id: Optional[str] = None,
        active_only: bool = True,
    ) -> List[Tuple[str, CandidateScore]]:
        query = self.session.query(Candidate.id, Score).join(Score, Score.candidate_id == Candidate.id)
        if active_only:
            query = query.filter(Candidate.is_active.is_(True))
        if cargo is not None:
            query = query.filter(Candidate.cargo == cargo)
        if party_id is not None:
            query = query.filter(Candidate.party_id == party_id)
        return [(cid, _to_candidate_score(row)) for cid, row in query.order_by(Candidate.id).all()]
