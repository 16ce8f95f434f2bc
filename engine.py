# ==============================================================================
# --- Two-Stage Fund Model: Core Simulation Engine (v1.0) ---
# ==============================================================================
#
# Simulates the life of a fund that writes many small discovery checks,
# promotes a selective subset to conviction checks and concentrates follow-on
# reserves in the winners, then aggregates many such lives into return
# distributions.
#
# ==============================================================================
import os
import math
import logging
import time
import numpy as np
from concurrent.futures import ProcessPoolExecutor
from typing import List, Optional, Dict, Any

from parameters import FundParameters, OutcomeParameters, SimulationResult, MonteCarloResults, MonteCarloSummary
from parameters_loader import validate_fund_parameters, normalize_fund_parameters, total_management_fees
from outcome_model import calculate_outcome_params, sample_discovery_multiple, sample_conviction_multiple
from seeded_random import SeededRandom, MODULUS
from utils import calculate_irr, calculate_summary, round_half_up
from waterfall import apply_carry

# Exits happen between this year and the end of the fund life
FIRST_EXIT_YEAR = 4
# Follow-on reserve is deployed in equal halves in these years
FOLLOW_ON_YEARS = (2, 3)


def calculate_capital_schedule(params: FundParameters) -> Dict[str, float]:
    """
    Works out how the fund's commitments are split before any outcome is drawn.

    Fees are charged on commitments: the full rate for the first
    `mgmt_fee_full_years`, the stepped-down rate afterwards. What remains is
    investable; the follow-on reserve is carved out of it and the rest is
    deployable into discovery and conviction checks.

    Args:
        params: Fund configuration parameters

    Returns:
        Dict with total_fees, investable_capital, follow_on_reserve,
        deployable_capital, num_discovery, num_conviction, discovery_total,
        conviction_total and capital_utilization (check totals / deployable)
    """
    total_fees = total_management_fees(params)

    investable_capital = params.fund_size - total_fees
    follow_on_reserve = investable_capital * params.follow_on_reserve_percent
    deployable_capital = investable_capital - follow_on_reserve

    num_discovery = round_half_up(params.target_conviction_count / params.graduation_rate)
    num_conviction = params.target_conviction_count

    discovery_total = num_discovery * params.discovery_check_size
    conviction_total = num_conviction * params.conviction_check_size

    return {
        'total_fees': total_fees,
        'investable_capital': investable_capital,
        'follow_on_reserve': follow_on_reserve,
        'deployable_capital': deployable_capital,
        'num_discovery': num_discovery,
        'num_conviction': num_conviction,
        'discovery_total': discovery_total,
        'conviction_total': conviction_total,
        'capital_utilization': (discovery_total + conviction_total) / deployable_capital if deployable_capital > 0 else math.inf,
    }


def _traction_noise_level(graduation_rate: float) -> float:
    # More selective funds read their companies slightly better
    return max(0.5, 1.0 - (0.25 - graduation_rate) * 0.5)


def simulate_fund_once(
    params: FundParameters,
    rng: SeededRandom,
    outcome_params: Optional[OutcomeParameters] = None,
    verbose: bool = False
) -> SimulationResult:
    """
    Core simulation engine: models one complete life of the fund.

    1. Capital schedule (fees, follow-on reserve, cohort sizes)
    2. Discovery phase: one outcome and one noisy traction signal per company
    3. Selection: the companies with the strongest signals become conviction
       companies and have their outcome redrawn from the conviction
       distribution. Only the ranking carries over from the discovery draw
    4. Follow-on: the reserve is split across the conviction companies with
       the best realized outcomes
    5. Year-indexed cash flows, multiples, carry and net IRR

    Args:
        params: Fund configuration parameters
        rng: Random source, advanced in place
        outcome_params: Pre-calibrated outcome model (calibrated from params if omitted)
        verbose: Print a one-line summary of the run

    Returns:
        SimulationResult for this fund life
    """
    if outcome_params is None:
        outcome_params = calculate_outcome_params(params)

    schedule = calculate_capital_schedule(params)
    follow_on_reserve = schedule['follow_on_reserve']
    num_discovery = schedule['num_discovery']
    num_conviction = schedule['num_conviction']

    # --- Discovery phase ---
    noise_level = _traction_noise_level(params.graduation_rate)
    discovery_outcomes: List[float] = []
    traction_signals: List[float] = []

    for _ in range(num_discovery):
        outcome = sample_discovery_multiple(rng, outcome_params)
        discovery_outcomes.append(outcome)
        # The signal is a noisy proxy of quality, not the realized outcome
        traction_signals.append(math.log(outcome + 0.1) + rng.gaussian(0, noise_level))

    # --- Selection into conviction ---
    # Strongest signal first; sorted() is stable so ties keep index order
    ranked = sorted(range(num_discovery), key=lambda idx: traction_signals[idx], reverse=True)
    conviction_order = ranked[:num_conviction]

    # Independent redraw from the conviction distribution, in selection order
    conviction_outcomes: Dict[int, float] = {}
    for idx in conviction_order:
        conviction_outcomes[idx] = sample_conviction_multiple(rng, outcome_params)

    # --- Follow-on allocation ---
    avg_follow_on_check = params.conviction_check_size * 0.5
    max_follow_on_by_reserve = math.floor(follow_on_reserve / avg_follow_on_check)
    max_follow_on_by_portfolio = round_half_up(num_conviction * (0.3 + params.follow_on_reserve_percent))
    num_follow_on = max(0, min(max_follow_on_by_reserve, max_follow_on_by_portfolio))

    # Greedy: best realized outcomes get the follow-on
    by_outcome = sorted(conviction_order, key=lambda idx: conviction_outcomes[idx], reverse=True)
    follow_on_indices = set(by_outcome[:num_follow_on])
    follow_on_check_size = follow_on_reserve / num_follow_on if num_follow_on > 0 else 0.0

    # --- Cash flows ---
    cash_flows = np.zeros(params.fund_life + 1)

    cash_flows[1] -= schedule['discovery_total']
    cash_flows[1] -= schedule['conviction_total']

    if num_follow_on > 0:
        for year in FOLLOW_ON_YEARS:
            cash_flows[year] -= follow_on_reserve * 0.5

    total_dist_gross = 0.0
    for idx in range(num_discovery):
        exit_year = rng.rand_int(FIRST_EXIT_YEAR, params.fund_life)

        if idx in conviction_outcomes:
            outcome = conviction_outcomes[idx]
            invested = params.discovery_check_size + params.conviction_check_size
            distribution = invested * outcome

            if idx in follow_on_indices:
                # Follow-on goes in at a higher valuation; winners step up more
                step_up = 2.5 + outcome * 0.1
                distribution += follow_on_check_size * max(outcome / step_up, 0.0)
        else:
            distribution = params.discovery_check_size * discovery_outcomes[idx]

        cash_flows[exit_year] += distribution
        total_dist_gross += distribution

    # --- Metrics ---
    total_called = float(-cash_flows[cash_flows < 0].sum())
    gross_tvpi = total_dist_gross / total_called

    net_cash_flows, carry_paid, total_dist_net = apply_carry(cash_flows, total_called, total_dist_gross, params.carry)
    net_tvpi = total_dist_net / total_called

    irr_net = calculate_irr(net_cash_flows)
    irr_converged = not math.isnan(irr_net)
    if not irr_converged:
        # Approximation: runs without an IRR count as 0% in the aggregates
        logging.debug("IRR solver found no solution (net TVPI %.2fx); substituting 0.", net_tvpi)
        irr_net = 0.0

    if verbose:
        print(f"Fund run: {num_discovery} discovery, {num_conviction} conviction, {num_follow_on} follow-on | "
              f"gross {gross_tvpi:.2f}x, net {net_tvpi:.2f}x, net IRR {irr_net:.1%}")

    return SimulationResult(
        total_called=total_called,
        total_dist_gross=total_dist_gross,
        total_dist_net=total_dist_net,
        gross_tvpi=gross_tvpi,
        net_tvpi=net_tvpi,
        dpi_gross=gross_tvpi,
        dpi_net=net_tvpi,
        irr_net=irr_net,
        carry_paid=carry_paid,
        discovery_only_count=num_discovery - num_conviction,
        conviction_count=num_conviction,
        follow_on_count=num_follow_on,
        irr_converged=irr_converged,
        cash_flows=cash_flows.tolist(),
    )


def _aggregate_results(
    params: FundParameters,
    simulations: List[SimulationResult],
    seed: Optional[int]
) -> MonteCarloResults:
    """Builds the percentile summaries and threshold probabilities of a batch."""
    num_simulations = len(simulations)
    net_tvpis = np.array([s.net_tvpi for s in simulations])

    summary = MonteCarloSummary(
        gross_tvpi=calculate_summary([s.gross_tvpi for s in simulations]),
        net_tvpi=calculate_summary(net_tvpis),
        dpi_net=calculate_summary([s.dpi_net for s in simulations]),
        irr_net=calculate_summary([s.irr_net for s in simulations]),
    )

    irr_fallback_count = sum(1 for s in simulations if not s.irr_converged)
    if irr_fallback_count:
        logging.warning("Net IRR substituted with 0 in %d of %d runs (no solution found).", irr_fallback_count, num_simulations)

    return MonteCarloResults(
        simulations=simulations,
        summary=summary,
        prob_return_fund=int(np.sum(net_tvpis >= 1.0)) / num_simulations,
        prob_2x=int(np.sum(net_tvpis >= 2.0)) / num_simulations,
        prob_3x=int(np.sum(net_tvpis >= 3.0)) / num_simulations,
        params=params,
        num_simulations=num_simulations,
        seed=seed,
        irr_fallback_count=irr_fallback_count,
    )


def _resolve_seed(seed: Optional[int]) -> int:
    # No seed: time-based, so the batch is not reproducible
    if seed is None:
        return int(time.time() * 1000) % MODULUS
    return int(seed)


def run_monte_carlo(
    params: FundParameters,
    num_simulations: int = 5000,
    seed: Optional[int] = None,
    verbose: bool = False
) -> MonteCarloResults:
    """
    Orchestrates the Monte Carlo simulation of fund performance.

    All runs share one random source and continue its stream: run i+1 starts
    where run i stopped. Identical params, num_simulations and seed therefore
    give identical results.

    Args:
        params: Complete fund configuration parameters. Decimal strings,
            Decimals and numpy scalars are normalized first; the normalized
            copy is the one echoed on the results
        num_simulations: Number of fund lives to simulate (at least 1)
        seed: Random seed for reproducible results (None for time-based)
        verbose: Print progress for long batches

    Returns:
        MonteCarloResults with every run, summaries and threshold probabilities
    """
    if num_simulations < 1:
        raise ValueError(f"num_simulations must be at least 1. Got: {num_simulations}")
    params = normalize_fund_parameters(params)
    validate_fund_parameters(params)

    seed = _resolve_seed(seed)
    rng = SeededRandom(seed)
    outcome_params = calculate_outcome_params(params)

    logging.info("Starting Monte Carlo simulation: %d runs with seed=%s", num_simulations, seed)

    simulations: List[SimulationResult] = []
    for i in range(num_simulations):
        if verbose and num_simulations >= 100 and (i + 1) % (num_simulations // 10) == 0:
            print(f"  Progress: {i+1}/{num_simulations} ({(i+1)/num_simulations:.0%}) complete")

        simulations.append(simulate_fund_once(params, rng, outcome_params))

    results = _aggregate_results(params, simulations, seed)
    logging.info("Monte Carlo simulation complete: %d runs, median net TVPI %.2fx", num_simulations, results.summary.net_tvpi.p50)
    return results


def _run_simulation_chunk(params: FundParameters, base_seed: int, start: int, stop: int) -> List[SimulationResult]:
    """Runs [start, stop) with one independently seeded random source per run."""
    outcome_params = calculate_outcome_params(params)
    return [simulate_fund_once(params, SeededRandom(base_seed + i), outcome_params) for i in range(start, stop)]


def run_monte_carlo_parallel(
    params: FundParameters,
    num_simulations: int = 5000,
    seed: Optional[int] = None,
    max_workers: Optional[int] = None
) -> MonteCarloResults:
    """
    Monte Carlo over a process pool.

    Run i owns SeededRandom(seed + i), so every run is reproducible on its own
    and the batch result does not depend on the number of workers. Results
    are concatenated in run-index order. The streams differ from
    run_monte_carlo(), which threads one generator through all runs.

    Args:
        params: Complete fund configuration parameters (normalized like run_monte_carlo)
        num_simulations: Number of fund lives to simulate (at least 1)
        seed: Base seed (None for time-based)
        max_workers: Worker processes (defaults to the CPU count); 1 runs in-process

    Returns:
        MonteCarloResults for the whole batch
    """
    if num_simulations < 1:
        raise ValueError(f"num_simulations must be at least 1. Got: {num_simulations}")
    params = normalize_fund_parameters(params)
    validate_fund_parameters(params)

    seed = _resolve_seed(seed)
    workers = max_workers or os.cpu_count() or 1
    workers = min(workers, num_simulations)

    logging.info("Starting parallel Monte Carlo simulation: %d runs on %d worker(s) with base seed=%s", num_simulations, workers, seed)

    if workers == 1:
        simulations = _run_simulation_chunk(params, seed, 0, num_simulations)
    else:
        chunk_size = math.ceil(num_simulations / workers)
        bounds = [(start, min(start + chunk_size, num_simulations)) for start in range(0, num_simulations, chunk_size)]

        simulations = []
        with ProcessPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(_run_simulation_chunk, params, seed, start, stop) for start, stop in bounds]
            # Collect in submission order to keep the run-index mapping
            for future in futures:
                simulations.extend(future.result())

    results = _aggregate_results(params, simulations, seed)
    logging.info("Parallel Monte Carlo simulation complete: %d runs", num_simulations)
    return results


def debug_one_simulation(params: FundParameters, seed: Optional[int] = None) -> Dict[str, Any]:
    """
    Runs a single fund life with its intermediate figures kept for inspection.

    Returns:
        Dict with the capital schedule, the calibrated outcome model and the
        SimulationResult
    """
    print("Running single simulation in debug mode...")
    rng = SeededRandom(_resolve_seed(seed))
    outcome_params = calculate_outcome_params(params)
    result = simulate_fund_once(params, rng, outcome_params, verbose=True)

    return {
        'capital_schedule': calculate_capital_schedule(params),
        'outcome_params': outcome_params,
        'result': result,
    }
