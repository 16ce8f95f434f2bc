# sensitivity.py
import pandas as pd
import copy
import logging
from typing import Dict, Any

import engine as fsm
from parameters import FundParameters
from parameters_loader import validate_fund_parameters, INTEGER_FIELDS
from utils import get_nested_value, set_nested_value


def run_sensitivity_suite(
    base_params_obj: FundParameters,
    sensitivity_suite_config: Dict[str, Dict[str, Any]],
    sims_per_run: int,
    seed: int = 42
) -> Dict[str, Dict[str, Any]]:
    """
    Reads a configuration dictionary and runs a full sensitivity analysis suite.

    Each test varies one FundParameters field and re-runs the Monte Carlo with
    the same seed for every value, so differences come from the parameter and
    not from the random stream. Example suite entry:

        'graduation_rate': {'path': ['graduation_rate'], 'variation': [0.15, 0.25, 0.35]}
        'fund_size_x': {'path': ['fund_size'], 'variation': [0.5, 1.0, 2.0], 'type': 'multiplicative'}

    Returns:
        Dict keyed by test name with the tested 'values' and, per value, the
        'median_net_tvpi', 'median_net_irr' and 'prob_return_fund' lists
    """
    all_sensitivity_results = {}

    for test_name, config in sensitivity_suite_config.items():
        logging.info("--- Running Sensitivity Test: %s ---", test_name)

        variation_values = config['variation']
        path_list = config['path']
        param_type = config.get('type', 'absolute')

        test_results = {'values': list(variation_values), 'median_net_tvpi': [], 'median_net_irr': [], 'prob_return_fund': []}

        for test_value in variation_values:
            logging.info("  Testing value/factor: %.4f", test_value)
            params_copy = copy.deepcopy(base_params_obj)

            original_param_value = get_nested_value(vars(params_copy), path_list)
            if original_param_value is None:
                raise ValueError(f"Sensitivity test '{test_name}' refers to unknown parameter path {path_list}")

            if param_type == 'multiplicative':
                new_value = original_param_value * test_value
            else:  # 'absolute'
                new_value = test_value

            if path_list[-1] in INTEGER_FIELDS:
                new_value = int(round(new_value))

            set_nested_value(vars(params_copy), path_list, new_value)
            validate_fund_parameters(params_copy)

            results = fsm.run_monte_carlo(
                params=params_copy,
                num_simulations=sims_per_run,
                seed=seed
            )

            test_results['median_net_tvpi'].append(results.summary.net_tvpi.p50)
            test_results['median_net_irr'].append(results.summary.irr_net.p50)
            test_results['prob_return_fund'].append(results.prob_return_fund)

        all_sensitivity_results[test_name] = test_results

    return all_sensitivity_results


def sensitivity_table(sensitivity_results: Dict[str, Dict[str, Any]]):
    """Flattens run_sensitivity_suite() output into a pandas DataFrame, one row per tested value."""
    rows = []
    for test_name, test_results in sensitivity_results.items():
        for i, value in enumerate(test_results['values']):
            rows.append({
                'test': test_name,
                'value': value,
                'median_net_tvpi': test_results['median_net_tvpi'][i],
                'median_net_irr': test_results['median_net_irr'][i],
                'prob_return_fund': test_results['prob_return_fund'][i],
            })
    return pd.DataFrame(rows, columns=['test', 'value', 'median_net_tvpi', 'median_net_irr', 'prob_return_fund'])
