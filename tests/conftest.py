"""
Pytest configuration and shared fixtures.
"""

import threading
import time
from typing import Callable, Dict, List, Optional, Set

import pytest

from votorank.database import Candidate, Score, init_database, get_session
from votorank.errors import PersistenceFailure
from votorank.prober import ProbeResult
from votorank.schema import MediaReference

GUID = "3f2a9c1e-8b7d-4e6f-a1b2-c3d4e5f6a7b8"


class FakeStore:
    """In-memory candidate store recording every write."""

    def __init__(self, rows: List[dict], failing_ids: Optional[Set[str]] = None):
        self.rows = {row["id"]: dict(row) for row in rows}
        self.failing_ids = failing_ids or set()
        self.writes: List[tuple] = []

    def load_media_references(self, party_id=None, active_only=True) -> List[MediaReference]:
        refs = []
        for row in sorted(self.rows.values(), key=lambda r: r["full_name"]):
            if row.get("photo_url") is None:
                continue
            if active_only and not row.get("is_active", True):
                continue
            if party_id is not None and row.get("party_id") != party_id:
                continue
            refs.append(MediaReference(
                candidate_id=row["id"],
                url=row["photo_url"],
                national_id=row.get("dni"),
                full_name=row["full_name"],
            ))
        return refs

    def update_photo_url(self, candidate_id: str, url: Optional[str]) -> None:
        if candidate_id in self.failing_ids:
            raise PersistenceFailure(candidate_id, "simulated rejection")
        self.rows[candidate_id]["photo_url"] = url
        self.writes.append((candidate_id, url))


class InstrumentedProber:
    """
    Probe double. ``live`` is the set of reachable URLs (or a predicate).
    Records every call and the peak number of concurrent calls.
    """

    def __init__(self, live, delay: float = 0.0, raising: Optional[Set[str]] = None):
        self.is_live: Callable[[str], bool] = live if callable(live) else (lambda url: url in live)
        self.delay = delay
        self.raising = raising or set()
        self.calls: List[str] = []
        self.in_flight = 0
        self.peak = 0
        self._lock = threading.Lock()

    def __call__(self, url: str) -> ProbeResult:
        with self._lock:
            self.calls.append(url)
            self.in_flight += 1
            self.peak = max(self.peak, self.in_flight)
        try:
            if self.delay:
                time.sleep(self.delay)
            if url in self.raising:
                raise RuntimeError(f"probe exploded for {url}")
            reachable = self.is_live(url)
            return ProbeResult(url, reachable, 200 if reachable else 404, "image/jpeg" if reachable else None)
        finally:
            with self._lock:
                self.in_flight -= 1


@pytest.fixture
def seed_declaration() -> Dict:
    return {"total": 5000}


@pytest.fixture
def flat_declaration() -> Dict:
    """Scraper-era payload, including negative error sentinels."""
    return {
        "source": "jne",
        "real_estate_count": 2,
        "real_estate_total": 350000,
        "vehicle_count": 1,
        "vehicle_total": -3,
        "total_income": 120000,
        "public_salary": 80000,
        "public_rent": 0,
        "other_public": -1,
        "private_salary": 0,
        "private_rent": 40000,
        "other_private": 0,
        "income_year": "2024",
    }


@pytest.fixture
def structured_declaration() -> Dict:
    return {
        "assets": [
            {"type": "Inmuebles", "description": "1 propiedad(es)", "value": 200000, "currency": "PEN"},
            {"type": "Vehículos", "description": "1 vehículo(s)", "value": 30000, "currency": "PEN"},
        ],
        "total_value": 230000,
        "total_liabilities": 15000,
        "income": {
            "annual_income": 90000,
            "public_income": 90000,
            "private_income": 0,
            "source": "Sector público",
        },
        "declaration_year": 2024,
        "has_declaration": True,
    }


@pytest.fixture
def media_rows() -> List[dict]:
    return [
        {"id": "c1", "full_name": "Ana Quispe", "dni": "12345678", "party_id": "p1",
         "photo_url": "https://mpesije.jne.gob.pe/apidocs/ok-photo.jpg", "is_active": True},
        {"id": "c2", "full_name": "Bruno Salas", "dni": "87654321", "party_id": "p1",
         "photo_url": f"https://mpesije.jne.gob.pe/apidocs/{GUID}.jpg", "is_active": True},
        {"id": "c3", "full_name": "Carla Rojas", "dni": None, "party_id": "p2",
         "photo_url": f"https://mpesije.jne.gob.pe/apidocs/{GUID}.jpg", "is_active": True},
        {"id": "c4", "full_name": "Diego Torres", "dni": None, "party_id": "p2",
         "photo_url": "https://example.org/gone.jpg", "is_active": True},
        {"id": "c5", "full_name": "Elena Vargas", "dni": None, "party_id": "p2",
         "photo_url": None, "is_active": True},
    ]


@pytest.fixture
def db_path(tmp_path):
    """SQLite database with three candidates and their scores."""
    path = tmp_path / "votorank.db"
    init_database(path)
    session = get_session(path)
    session.add_all([
        Candidate(id="c1", full_name="Ana Quispe", cargo="presidente", party_id="p1", dni="12345678",
                  photo_url="https://mpesije.jne.gob.pe/apidocs/a.jpg",
                  assets_declaration={"total": 5000}, is_active=True),
        Candidate(id="c2", full_name="Bruno Salas", cargo="senador", party_id="p1", dni=None,
                  photo_url=None,
                  assets_declaration={"real_estate_total": 0, "vehicle_total": 0}, is_active=True),
        Candidate(id="c3", full_name="Carla Rojas", cargo="senador", party_id="p2", dni=None,
                  photo_url="https://example.org/c.jpg",
                  assets_declaration=None, is_active=False),
    ])
    session.add_all([
        Score(candidate_id="c1", competence=70, integrity=80, transparency=60, plan_viability=50,
              score_balanced=72.0, score_merit=71.0, score_integrity=75.0, score_balanced_p=68.5),
        Score(candidate_id="c2", competence=60, integrity=90, transparency=70,
              score_balanced=74.5, score_merit=68.0, score_integrity=79.0),
    ])
    session.commit()
    session.close()
    return path
