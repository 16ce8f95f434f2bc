# ==============================================================================
# --- Two-Stage Fund Model: Data Structures (v1.0) ---
# ==============================================================================
#
# This module defines the data structures shared by the Monte Carlo engine:
# the fund configuration, the calibrated outcome model, and the per-run and
# aggregated result records.
#
# ==============================================================================

from dataclasses import dataclass, field
from typing import List, Dict, Optional, Any


# --------------------------------------------------------------------------
# --- Configuration & Parameter Dataclasses ---
# --------------------------------------------------------------------------

# Brings together everything the engine needs to simulate one fund life.
# Supplied externally and treated as read-only for the duration of a batch.
@dataclass
class FundParameters:
    # Core fund economics
    # Total LP commitments
    fund_size: float
    # Fund life in whole years. Exits are scheduled between year 4 and this year
    fund_life: int
    # Annual management fee as a fraction of commitments
    mgmt_fee_rate: float
    # Number of years charged at the full fee rate
    mgmt_fee_full_years: int
    # Multiplier applied to the fee rate after the full-fee years (e.g. 0.7)
    mgmt_fee_stepdown: float
    # GP share of fund profit
    carry: float

    # Investment strategy
    # Number of discovery companies promoted to a conviction check
    target_conviction_count: int
    # Fraction of discovery companies that graduate. Discovery count = target / rate
    graduation_rate: float

    # Check sizes
    discovery_check_size: float
    conviction_check_size: float
    # Informational bounds for the conviction check, not enforced by the engine
    conviction_check_min: float
    conviction_check_max: float

    # Follow-on reserve as a fraction of investable capital (after fees)
    follow_on_reserve_percent: float

    # Base success rates: fraction of companies returning more than 1x
    discovery_success_rate: float
    conviction_success_rate: float


DEFAULT_FUND_PARAMS: Dict[str, Any] = {
    'fund_size': 25_000_000,
    'fund_life': 10,
    'mgmt_fee_rate': 0.02,
    'mgmt_fee_full_years': 4,
    'mgmt_fee_stepdown': 0.7,
    'carry': 0.20,
    'target_conviction_count': 22,
    'graduation_rate': 0.25,
    'discovery_check_size': 100_000,
    'conviction_check_size': 400_000,
    'conviction_check_min': 250_000,
    'conviction_check_max': 750_000,
    'follow_on_reserve_percent': 0.20,
    'discovery_success_rate': 0.30,
    'conviction_success_rate': 0.50,
}

# Fund size presets. Each one only overrides the fields it lists.
FUND_PRESETS: Dict[str, Dict[str, Any]] = {
    '16M': {
        'fund_size': 16_000_000,
        'target_conviction_count': 17,
        'follow_on_reserve_percent': 0.10,
    },
    '25M': {
        'fund_size': 25_000_000,
        'target_conviction_count': 22,
        'follow_on_reserve_percent': 0.20,
    },
    '40M': {
        'fund_size': 40_000_000,
        'target_conviction_count': 30,
        'follow_on_reserve_percent': 0.30,
    },
}


def default_fund_parameters(**overrides) -> FundParameters:
    """Returns the default fund configuration with any field overridden by keyword."""
    values = dict(DEFAULT_FUND_PARAMS)
    values.update(overrides)
    return FundParameters(**values)


# Outcome distribution derived from a FundParameters instance.
# Within each family the rates sum to 1: every band is a share of what the
# fail rate leaves over.
@dataclass
class OutcomeParameters:
    # Discovery-only companies (did not graduate)
    discovery_fail_rate: float          # 0x
    discovery_low_return_rate: float    # 0.5-2x
    discovery_mid_return_rate: float    # 2-5x
    discovery_high_return_rate: float   # 5-10x
    discovery_outlier_rate: float       # 10x+

    # Conviction companies (graduated)
    conviction_fail_rate: float
    conviction_low_return_rate: float           # ~1x
    conviction_mid_return_rate: float           # ~3x
    conviction_good_return_rate: float          # ~7x
    conviction_great_return_rate: float         # ~20x
    conviction_outlier_rate: float              # ~40x
    conviction_mega_outlier_rate: float         # 100x+

    # Lower bounds of the three upper conviction bands
    conviction_great_multiplier_base: float
    conviction_outlier_multiplier_base: float
    conviction_mega_outlier_multiplier_base: float

    # Calibration inputs, kept for inspection
    selectivity_bonus: float = 0.0
    quality_bonus: float = 0.0

    def discovery_probabilities(self) -> List[float]:
        """Discovery branch probabilities in sampling order."""
        return [
            self.discovery_fail_rate,
            self.discovery_low_return_rate,
            self.discovery_mid_return_rate,
            self.discovery_high_return_rate,
            self.discovery_outlier_rate,
        ]

    def conviction_probabilities(self) -> List[float]:
        """Conviction branch probabilities in sampling order."""
        return [
            self.conviction_fail_rate,
            self.conviction_low_return_rate,
            self.conviction_mid_return_rate,
            self.conviction_good_return_rate,
            self.conviction_great_return_rate,
            self.conviction_outlier_rate,
            self.conviction_mega_outlier_rate,
        ]


# --------------------------------------------------------------------------
# --- Simulation Result Dataclasses ---
# --------------------------------------------------------------------------

# Permanent record of one simulated fund life
@dataclass
class SimulationResult:
    # Called capital (sum of all negative cash flows, as a positive number)
    total_called: float

    # Distributions before and after carry
    total_dist_gross: float
    total_dist_net: float

    # Multiples. DPI equals TVPI: every position is exited within the fund life
    gross_tvpi: float
    net_tvpi: float
    dpi_gross: float
    dpi_net: float

    # Net IRR. 0 when the solver found no solution (see irr_converged)
    irr_net: float

    carry_paid: float

    # Portfolio breakdown
    discovery_only_count: int
    conviction_count: int
    follow_on_count: int

    # False when the IRR solver reported no solution and irr_net was set to 0
    irr_converged: bool = True
    # Gross cash flows indexed by year, index 0 is always 0
    cash_flows: List[float] = field(default_factory=list)


@dataclass
class SimulationSummary:
    mean: float
    p10: float
    p25: float
    p50: float
    p75: float
    p90: float
    min: float
    max: float


@dataclass
class MonteCarloSummary:
    gross_tvpi: SimulationSummary
    net_tvpi: SimulationSummary
    dpi_net: SimulationSummary
    irr_net: SimulationSummary


# Output of one top-level Monte Carlo invocation, returned whole
@dataclass
class MonteCarloResults:
    simulations: List[SimulationResult]
    summary: MonteCarloSummary

    # Probability metrics on net TVPI
    prob_return_fund: float      # P(TVPI >= 1x)
    prob_2x: float               # P(TVPI >= 2x)
    prob_3x: float               # P(TVPI >= 3x)

    # Echo of the inputs
    params: FundParameters
    num_simulations: int
    seed: Optional[int] = None

    # Runs whose net IRR was substituted with 0
    irr_fallback_count: int = 0
