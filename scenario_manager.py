# scenario_manager.py

import logging
import pandas as pd
from datetime import datetime

from parameters_loader import parse_fund_parameters
from engine import run_monte_carlo


class ScenarioManager:
    """Manages scenario creation, simulation and comparison"""

    @staticmethod
    def create_scenario(name, config_dict):
        """Create a new scenario from a fund configuration mapping (validated immediately)"""
        return {
            'name': name,
            'timestamp': datetime.now(),
            'config': dict(config_dict),
            'params': parse_fund_parameters(config_dict),
            'results': None,
            'cached_metrics': None  # Cache for calculated metrics
        }

    @staticmethod
    def run_scenario(scenario, num_simulations=5000, seed=None):
        """Execute Monte Carlo simulation for a scenario"""
        try:
            results = run_monte_carlo(
                params=scenario['params'],
                num_simulations=num_simulations,
                seed=seed
            )
        except ValueError as e:
            logging.warning("Scenario '%s' failed: %s", scenario['name'], e)
            return False, f"Error running simulation: {str(e)}"

        scenario['results'] = results
        scenario['cached_metrics'] = None  # Clear cache when new results are added
        return True, "Simulation completed successfully"

    @staticmethod
    def calculate_metrics(scenario, force_recalculate=False):
        """Calculate summary metrics from scenario results with caching"""
        if scenario['results'] is None:
            return None

        # Return cached metrics if available and not forcing recalculation
        if not force_recalculate and scenario.get('cached_metrics') is not None:
            return scenario['cached_metrics']

        results = scenario['results']
        df_results = pd.DataFrame({
            'net_tvpi': [sim.net_tvpi for sim in results.simulations],
            'gross_tvpi': [sim.gross_tvpi for sim in results.simulations],
            'irr_net': [sim.irr_net for sim in results.simulations],
            'carry_paid': [sim.carry_paid for sim in results.simulations],
        })

        metrics = {
            'median_net_tvpi': df_results['net_tvpi'].median(),
            'mean_net_tvpi': df_results['net_tvpi'].mean(),
            'median_gross_tvpi': df_results['gross_tvpi'].median(),
            'mean_gross_tvpi': df_results['gross_tvpi'].mean(),
            'median_net_irr': df_results['irr_net'].median(),
            'mean_net_irr': df_results['irr_net'].mean(),
            'p10_net_tvpi': df_results['net_tvpi'].quantile(0.10),
            'p90_net_tvpi': df_results['net_tvpi'].quantile(0.90),
            'mean_carry_paid': df_results['carry_paid'].mean(),
            'prob_return_fund': results.prob_return_fund,
            'prob_2x': results.prob_2x,
            'prob_3x': results.prob_3x,
            'num_simulations': results.num_simulations,
        }

        # Cache the calculated metrics
        scenario['cached_metrics'] = metrics
        return metrics

    @staticmethod
    def compare_scenarios(scenarios):
        """Side-by-side metrics for every scenario that has results, one row per scenario"""
        rows = []
        for scenario in scenarios:
            metrics = ScenarioManager.calculate_metrics(scenario)
            if metrics is None:
                continue
            row = {'scenario': scenario['name'], 'fund_size': scenario['params'].fund_size}
            row.update(metrics)
            rows.append(row)

        if not rows:
            return pd.DataFrame()
        return pd.DataFrame(rows).set_index('scenario')
