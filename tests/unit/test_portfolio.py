"""Unit tests for the vectorized portfolio path.

Tests cover:
- Namespace registration
- Parity between calculate_portfolio and scalar calculate_rwa
- Schema validation (missing column, type mismatch)
- Exclusion of rejected rows, including duplicate counterparty IDs
- Lenient and strict treatment of missing inputs
- Warnings for ignored adjustment columns
"""

from __future__ import annotations

import polars as pl
import pytest

from airb_calc.contracts.config import CalculationConfig
from airb_calc.contracts.models import (
    AbsoluteAdjustment,
    AdditiveAdjustment,
    Counterparty,
    MultiplicativeAdjustment,
    PercentageAdjustment,
)
from airb_calc.data.schemas import RWA_RESULT_SCHEMA
from airb_calc.domain.enums import ErrorSeverity
from airb_calc.engine.calculator import (
    RWACalculator,
    calculate_rwa,
    counterparties_to_frame,
)


@pytest.fixture
def counterparties() -> list[Counterparty]:
    """A mixed portfolio touching every PD source, AVC case and stage."""
    return [
        Counterparty("CP001", pd=0.01, lgd=0.45, ead=1_000_000.0, maturity=2.5,
                     industry="Manufacturing", region="Europe"),
        Counterparty("CP002", pd=0.02, ttc_pd=0.015, lgd=0.4, ead=500_000.0, maturity=0.5,
                     industry="Technology", region="North America",
                     rwa_adjustment=PercentageAdjustment(percentage=10.0)),
        Counterparty("CP003", pd=0.005, lgd=0.35, ead=2_000_000.0, maturity=4.0,
                     is_financial=True, is_large_financial=True,
                     portfolio_rwa_adjustment=AdditiveAdjustment(delta=-5000.0)),
        Counterparty("CP004", pd=0.03, lgd=0.5, ead=750_000.0, maturity=6.0,
                     is_financial=True, is_large_financial=None, asset_size=250e9,
                     credit_rating="BB", use_cred_rating_pd=True,
                     rwa_adjustment=MultiplicativeAdjustment(multiplier=1.2),
                     portfolio_rwa_adjustment=AbsoluteAdjustment(target_rwa=400_000.0)),
        Counterparty("CP005", pd=0.04, lgd=0.45, ead=300_000.0, maturity=3.0,
                     is_financial=True, is_regulated=False,
                     credit_rating="ZZZ", use_cred_rating_pd=True),
        Counterparty("CP006", pd=None, lgd=None, ead=100_000.0, maturity=None),
    ]


@pytest.fixture
def calculator() -> RWACalculator:
    return RWACalculator(CalculationConfig.default())


def _minimal_frame(**overrides: list) -> pl.DataFrame:
    data = {
        "counterparty_id": ["CP001", "CP002"],
        "pd": [0.01, 0.02],
        "lgd": [0.45, 0.45],
        "ead": [1_000_000.0, 500_000.0],
        "maturity": [2.5, 2.5],
    }
    data.update(overrides)
    return pl.DataFrame(data)


# =============================================================================
# Registration
# =============================================================================


class TestNamespaceRegistration:
    """The airb namespaces are available once the engine is imported."""

    def test_lazyframe_namespace(self) -> None:
        assert hasattr(pl.LazyFrame(), "airb")

    def test_expr_namespace(self) -> None:
        assert hasattr(pl.col("pd"), "airb")


# =============================================================================
# Parity
# =============================================================================


class TestScalarVectorParity:
    """calculate_portfolio agrees with calculate_rwa row by row."""

    def test_results_match(
        self, calculator: RWACalculator, counterparties: list[Counterparty]
    ) -> None:
        result = calculator.calculate_portfolio(counterparties_to_frame(counterparties))
        df = result.frame.collect()

        assert df.columns == list(RWA_RESULT_SCHEMA)
        assert df["counterparty_id"].to_list() == [cp.counterparty_id for cp in counterparties]

        for row, cp in zip(df.iter_rows(named=True), counterparties):
            expected = calculate_rwa(cp)
            assert row["pd_used"] == pytest.approx(expected.pd)
            assert row["pd_source"] == expected.pd_source.value
            assert row["correlation"] == pytest.approx(expected.correlation, rel=1e-9)
            assert row["avc_multiplier"] == expected.avc_multiplier
            assert row["maturity_adjustment"] == pytest.approx(expected.maturity_adjustment, rel=1e-9)
            assert row["k"] == pytest.approx(expected.k, rel=1e-6)
            assert row["base_rwa"] == pytest.approx(expected.base_rwa, rel=1e-6)
            assert row["rwa"] == pytest.approx(expected.rwa, rel=1e-6)
            assert row["has_adjustment"] == expected.has_adjustment
            assert row["has_portfolio_adjustment"] == expected.has_portfolio_adjustment
            assert row["stage"] == expected.stage.value
            if expected.original_rwa is None:
                assert row["original_rwa"] is None
            else:
                assert row["original_rwa"] == pytest.approx(expected.original_rwa, rel=1e-6)

    def test_warnings_match(
        self, calculator: RWACalculator, counterparties: list[Counterparty]
    ) -> None:
        result = calculator.calculate_portfolio(counterparties_to_frame(counterparties))
        codes = sorted((e.counterparty_reference, e.code) for e in result.errors)
        assert codes == [
            ("CP005", "DQ003"),
            ("CP006", "IRB003"),
            ("CP006", "IRB004"),
            ("CP006", "IRB005"),
        ]
        assert not result.has_errors


# =============================================================================
# Schema validation
# =============================================================================


class TestSchemaValidation:
    """Tests for frame-level rejection."""

    def test_missing_column(self, calculator: RWACalculator) -> None:
        result = calculator.calculate_portfolio(_minimal_frame().drop("lgd"))
        assert [e.code for e in result.errors] == ["SCH001"]
        assert result.errors[0].field_name == "lgd"
        df = result.frame.collect()
        assert df.height == 0
        assert df.schema == pl.Schema(RWA_RESULT_SCHEMA)

    def test_type_mismatch(self, calculator: RWACalculator) -> None:
        result = calculator.calculate_portfolio(_minimal_frame(lgd=["45%", "45%"]))
        assert [e.code for e in result.errors] == ["SCH002"]
        assert result.has_critical_errors

    def test_integer_columns_accepted(self, calculator: RWACalculator) -> None:
        result = calculator.calculate_portfolio(_minimal_frame(ead=[1_000_000, 500_000]))
        assert result.errors == []
        assert result.frame.collect().height == 2

    def test_required_columns_only(self, calculator: RWACalculator) -> None:
        df = calculator.calculate_portfolio(_minimal_frame()).frame.collect()
        assert df["industry"].to_list() == [None, None]
        assert df["avc_multiplier"].to_list() == [1.0, 1.0]


# =============================================================================
# Row rejection
# =============================================================================


class TestRowRejection:
    """Rejected rows are reported and excluded; the rest are kept."""

    def test_pd_out_of_range(self, calculator: RWACalculator) -> None:
        result = calculator.calculate_portfolio(_minimal_frame(pd=[0.01, 1.0]))
        df = result.frame.collect()
        assert df["counterparty_id"].to_list() == ["CP001"]
        assert [e.code for e in result.critical_errors] == ["IRB001"]
        assert result.rejected_counterparties == ["CP002"]

    def test_pd_below_maturity_adjustment_minimum(self, calculator: RWACalculator) -> None:
        result = calculator.calculate_portfolio(_minimal_frame(pd=[0.01, 1e-7]))
        df = result.frame.collect()
        assert df["counterparty_id"].to_list() == ["CP001"]
        assert df["rwa"].min() > 0
        assert [e.code for e in result.critical_errors] == ["IRB007"]
        assert result.rejected_counterparties == ["CP002"]

    def test_duplicate_ids_reject_only_bad_row(self, calculator: RWACalculator) -> None:
        frame = _minimal_frame(counterparty_id=["CP001", "CP001"], pd=[0.01, 0.0])
        df = calculator.calculate_portfolio(frame).frame.collect()
        assert df.height == 1
        assert df["pd_used"].to_list() == [0.01]

    def test_strict_rejects_missing_inputs(self) -> None:
        calculator = RWACalculator(CalculationConfig.strict())
        result = calculator.calculate_portfolio(_minimal_frame(lgd=[0.45, None]))
        assert result.frame.collect()["counterparty_id"].to_list() == ["CP001"]
        assert [(e.code, e.severity) for e in result.errors] == [
            ("IRB005", ErrorSeverity.CRITICAL)
        ]

    def test_lenient_defaults_missing_inputs(self, calculator: RWACalculator) -> None:
        result = calculator.calculate_portfolio(_minimal_frame(lgd=[0.45, None]))
        df = result.frame.collect()
        assert df["lgd"].to_list() == [0.45, 0.45]
        assert [e.code for e in result.warnings] == ["IRB005"]
        assert result.warnings[0].counterparty_reference == "CP002"

    def test_nan_pd_treated_as_missing(self, calculator: RWACalculator) -> None:
        result = calculator.calculate_portfolio(_minimal_frame(pd=[0.01, float("nan")]))
        df = result.frame.collect()
        assert df["pd_source"].to_list() == ["pit", "default"]


# =============================================================================
# Adjustment columns
# =============================================================================


class TestAdjustmentColumns:
    """Flattened adjustment columns in the portfolio frame."""

    def test_ignored_adjustments_warn(self, calculator: RWACalculator) -> None:
        frame = _minimal_frame(
            cp_adjustment_type=["bespoke", "Additive"],
            cp_adjustment_value=[1.0, float("nan")],
            pf_adjustment_type=[None, "percentage"],
            pf_adjustment_value=[None, 10.0],
        )
        result = calculator.calculate_portfolio(frame)
        df = result.frame.collect()

        assert sorted(e.code for e in result.warnings) == ["ADJ001", "ADJ002"]
        assert df["stage"].to_list() == ["base", "portfolio_adjusted"]
        assert df["has_adjustment"].to_list() == [False, False]
        assert df["rwa"][1] == pytest.approx(df["base_rwa"][1] * 1.1)
