"""
Tests for the declaration normalization audit.
"""

from votorank.audit import AuditStats, audit_declarations


class TestAuditDeclarations:
    """Counts over a mixed population."""

    def test_mixed_population(self, seed_declaration, flat_declaration, structured_declaration):
        rows = [
            ("c1", seed_declaration),
            ("c2", flat_declaration),
            ("c3", structured_declaration),
            ("c4", {"total": 0}),
            ("c5", "not a mapping"),
        ]

        stats = audit_declarations(rows)

        assert isinstance(stats, AuditStats)
        assert stats.total == 5
        assert stats.normalized == 3
        assert stats.no_data == 2
        assert stats.shapes == {"seed": 2, "flat": 1, "structured": 1, "malformed": 1}
        assert stats.negative_after_normalization == 0

    def test_raw_negative_sentinels_are_counted(self, flat_declaration):
        stats = audit_declarations([("c2", flat_declaration)])

        # vehicle_total and other_public carry negative sentinels
        assert stats.raw_negative_values == 2
        assert stats.negative_after_normalization == 0

    def test_flat_declaration_coverage(self, flat_declaration):
        stats = audit_declarations([("c2", flat_declaration)])

        assert stats.with_assets == 1
        assert stats.with_income == 1
        assert stats.with_income_breakdown == 1
        assert stats.with_year == 1

    def test_empty_input(self):
        stats = audit_declarations([])
        assert stats.to_dict()["total"] == 0
        assert stats.shapes == {}

    def test_only_positive_liabilities_are_counted(self, structured_declaration):
        zero = dict(structured_declaration, total_liabilities=0)
        absent = {k: v for k, v in structured_declaration.items() if k != "total_liabilities"}

        stats = audit_declarations([("a", structured_declaration), ("b", zero), ("c", absent)])

        assert stats.normalized == 3
        assert stats.with_liabilities == 1
