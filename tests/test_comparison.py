"""Tests for comparison analytics."""

from datetime import date

from aaref.analytics.comparison import (
    compare_salary,
    industry_comparison,
    market_comparison,
    nearby_records,
    round_half_up,
)
from aaref.models.record import Industry, RecordStatus, SalaryRecord


def _make_record(
    record_id: int,
    salary: int,
    industry: Industry = Industry.TELECOM,
    experience: str = "1-3 years",
    company: str = "Vodafone",
    status: RecordStatus = RecordStatus.AUTO_APPROVED,
) -> SalaryRecord:
    return SalaryRecord(
        record_id=record_id,
        title="Network Engineer",
        company=company,
        industry=industry,
        city="Cairo",
        experience=experience,
        salary=salary,
        submitted=date(2026, 1, 10),
        trust_score=80,
        status=status,
    )


class TestCompareSalary:
    def test_no_peers(self) -> None:
        c = compare_salary(25000, [])
        assert (c.average, c.delta_percent, c.count, c.percentile) == (25000, 0, 0, 50)

    def test_percentile_counts_at_or_below(self) -> None:
        c = compare_salary(20000, [10000, 20000, 30000, 40000])
        assert c.percentile == 50
        assert c.average == 25000
        assert c.delta_percent == -20

    def test_half_up_rounding(self) -> None:
        assert round_half_up(2.5) == 3
        assert round_half_up(-2.5) == -2
        # 1 of 8 peers at or below: 12.5% rounds up.
        c = compare_salary(10000, [10000] + [20000] * 7)
        assert c.percentile == 13


class TestIndustryComparison:
    def test_rejected_excluded(self) -> None:
        corpus = [
            _make_record(1, 20000),
            _make_record(2, 30000, status=RecordStatus.FLAGGED),
            _make_record(3, 900000, status=RecordStatus.REJECTED),
            _make_record(4, 99999, industry=Industry.MEDIA),
        ]
        c = industry_comparison(25000, "Telecom", corpus)
        assert c.count == 2
        assert c.average == 25000


class TestMarketComparison:
    def test_public_records_only(self) -> None:
        corpus = [
            _make_record(1, 20000),
            _make_record(2, 40000, experience="5-8 years"),
            _make_record(3, 30000, status=RecordStatus.FLAGGED),
            _make_record(4, 10000, industry=Industry.FMCG),
        ]
        result = market_comparison(30000, "Telecom", "1-3 years", corpus)
        assert result.industry.count == 2
        assert result.industry.average == 30000
        assert result.experience.count == 2
        assert result.experience.average == 15000
        assert result.experience.delta_percent == 100
        assert set(result.to_dict()) == {"industry", "experience"}


class TestNearby:
    def test_substring_match(self) -> None:
        corpus = [
            _make_record(1, 20000, company="Vodafone Egypt"),
            _make_record(2, 20000, company="Orange"),
            _make_record(3, 20000, company="vodafone", status=RecordStatus.FLAGGED),
        ]
        assert [r.record_id for r in nearby_records("Voda", corpus)] == [1]

    def test_short_query_returns_nothing(self) -> None:
        assert nearby_records("Vo", [_make_record(1, 20000)]) == []

    def test_limit(self) -> None:
        corpus = [_make_record(i, 20000) for i in range(1, 8)]
        assert len(nearby_records("vodafone", corpus)) == 4
