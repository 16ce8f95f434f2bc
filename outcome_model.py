# ==============================================================================
# --- Two-Stage Fund Model: Outcome Model (v1.0) ---
# ==============================================================================
#
# Calibrates the categorical outcome distributions from the fund configuration
# and samples exit multiples for discovery-only and conviction companies.
#
# ==============================================================================
import math

from parameters import FundParameters, OutcomeParameters
from parameters_loader import validate_fund_parameters
from seeded_random import SeededRandom

# Baselines the calibration bonuses are measured against
BASELINE_GRADUATION_RATE = 0.25
BASELINE_FOLLOW_ON_RESERVE = 0.20
BASELINE_FUND_SIZE = 25_000_000

# Share of the non-failing mass given to each band, lowest band first
DISCOVERY_BAND_SPLIT = (0.50, 0.25, 0.15, 0.10)
CONVICTION_BAND_SPLIT = (0.45, 0.22, 0.15, 0.10, 0.05, 0.03)

# Within the discovery outlier band: probability of the 10-20x sub-range
DISCOVERY_OUTLIER_LOW_SHARE = 0.3


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def calculate_outcome_params(params: FundParameters) -> OutcomeParameters:
    """
    Maps a fund configuration to its outcome distributions.

    The base success rates are the primary dials. Selectivity (graduation
    rate), follow-on reserve size and fund scale act as bounded second-order
    corrections:
    - a lower graduation rate means more selective conviction picks, which
      improves conviction outcomes and slightly worsens the discovery leftovers
    - larger reserves and larger funds lift the conviction quality bonus

    Args:
        params: Fund configuration. Validated first; invalid input raises ValueError

    Returns:
        OutcomeParameters whose discovery and conviction probabilities each sum to 1
    """
    validate_fund_parameters(params)

    selectivity_bonus = (BASELINE_GRADUATION_RATE - params.graduation_rate) / BASELINE_GRADUATION_RATE
    follow_on_bonus = (params.follow_on_reserve_percent - BASELINE_FOLLOW_ON_RESERVE) / BASELINE_FOLLOW_ON_RESERVE * 0.5
    scale_bonus = math.log(params.fund_size / BASELINE_FUND_SIZE) * 0.1

    quality_bonus = _clamp(selectivity_bonus + follow_on_bonus * 0.3 + scale_bonus * 0.2, -0.3, 0.5)

    # More selective funds leave slightly worse companies in the discovery-only pool
    discovery_penalty = selectivity_bonus * 0.05
    discovery_fail_rate = _clamp((1 - params.discovery_success_rate) + discovery_penalty, 0.50, 0.85)
    discovery_pool = 1 - discovery_fail_rate

    conviction_fail_rate = _clamp((1 - params.conviction_success_rate) - quality_bonus * 0.10, 0.30, 0.65)
    conviction_pool = 1 - conviction_fail_rate

    discovery_bands = [discovery_pool * share for share in DISCOVERY_BAND_SPLIT]
    conviction_bands = [conviction_pool * share for share in CONVICTION_BAND_SPLIT]

    return OutcomeParameters(
        discovery_fail_rate=discovery_fail_rate,
        discovery_low_return_rate=discovery_bands[0],
        discovery_mid_return_rate=discovery_bands[1],
        discovery_high_return_rate=discovery_bands[2],
        discovery_outlier_rate=discovery_bands[3],

        conviction_fail_rate=conviction_fail_rate,
        conviction_low_return_rate=conviction_bands[0],
        conviction_mid_return_rate=conviction_bands[1],
        conviction_good_return_rate=conviction_bands[2],
        conviction_great_return_rate=conviction_bands[3],
        conviction_outlier_rate=conviction_bands[4],
        conviction_mega_outlier_rate=conviction_bands[5],

        # Better selectivity means higher potential multiples
        conviction_great_multiplier_base=15 + quality_bonus * 5,
        conviction_outlier_multiplier_base=30 + quality_bonus * 15,
        conviction_mega_outlier_multiplier_base=75 + quality_bonus * 25,

        selectivity_bonus=selectivity_bonus,
        quality_bonus=quality_bonus,
    )


def sample_discovery_multiple(rng: SeededRandom, outcome_params: OutcomeParameters) -> float:
    """
    Samples the exit multiple of a discovery-only company.

    Draw count: 1 on failure, 2 in the 0.5-10x bands, 3 in the outlier band.
    """
    r = rng.random()
    cumulative = 0.0

    cumulative += outcome_params.discovery_fail_rate
    if r < cumulative:
        return 0.0

    cumulative += outcome_params.discovery_low_return_rate
    if r < cumulative:
        return 0.5 + rng.random() * 1.5   # 0.5-2x

    cumulative += outcome_params.discovery_mid_return_rate
    if r < cumulative:
        return 2.0 + rng.random() * 3.0   # 2-5x

    cumulative += outcome_params.discovery_high_return_rate
    if r < cumulative:
        return 5.0 + rng.random() * 5.0   # 5-10x

    # Outlier band takes whatever probability is left
    if rng.random() < DISCOVERY_OUTLIER_LOW_SHARE:
        return 10.0 + rng.random() * 10.0   # 10-20x
    return 20.0 + rng.random() * 30.0       # 20-50x


def sample_conviction_multiple(rng: SeededRandom, outcome_params: OutcomeParameters) -> float:
    """
    Samples the exit multiple of a conviction company.

    Draw count: 1 on failure, 2 otherwise.
    """
    r = rng.random()
    cumulative = 0.0

    cumulative += outcome_params.conviction_fail_rate
    if r < cumulative:
        return 0.0

    cumulative += outcome_params.conviction_low_return_rate
    if r < cumulative:
        return 0.8 + rng.random() * 0.4   # ~1x

    cumulative += outcome_params.conviction_mid_return_rate
    if r < cumulative:
        return 2.5 + rng.random() * 1.5   # ~3x

    cumulative += outcome_params.conviction_good_return_rate
    if r < cumulative:
        return 5.0 + rng.random() * 5.0   # ~7x

    cumulative += outcome_params.conviction_great_return_rate
    if r < cumulative:
        return outcome_params.conviction_great_multiplier_base + rng.random() * 10.0

    cumulative += outcome_params.conviction_outlier_rate
    if r < cumulative:
        return outcome_params.conviction_outlier_multiplier_base + rng.random() * 20.0

    # Mega-outlier band takes whatever probability is left
    return outcome_params.conviction_mega_outlier_multiplier_base + rng.random() * 75.0
