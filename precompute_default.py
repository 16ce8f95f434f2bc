# precompute_default.py

import json
import logging
from datetime import datetime
from pathlib import Path

from parameters_loader import load_config
from engine import run_monte_carlo
from analysis_utils import display_results_summary, export_results_to_excel


def precompute_default_scenario(config_path='config.yaml', output_dir='default_scenario', num_simulations=None, seed=None):
    """Run the default configuration and save an Excel report plus metadata to disk"""

    print("Loading default configuration...")
    params, settings = load_config(config_path)

    num_simulations = num_simulations or settings['num_simulations']
    seed = seed if seed is not None else settings['seed']

    print(f"Running Monte Carlo simulation ({num_simulations} runs)...")
    results = run_monte_carlo(params=params, num_simulations=num_simulations, seed=seed)
    display_results_summary(results)

    default_path = Path(output_dir)
    default_path.mkdir(parents=True, exist_ok=True)

    print("Generating Excel report...")
    excel_filename = default_path / "results.xlsx"
    export_results_to_excel(results, filename=str(excel_filename))
    print(f"✅ Excel report saved to {excel_filename}")

    metadata = {
        'name': 'Base Case',
        'timestamp': datetime.now().isoformat(),
        'num_simulations': results.num_simulations,
        'seed': results.seed,
        'median_net_tvpi': results.summary.net_tvpi.p50,
        'prob_return_fund': results.prob_return_fund,
        'irr_fallback_count': results.irr_fallback_count,
    }

    with open(default_path / "metadata.json", 'w', encoding='utf-8') as f:
        json.dump(metadata, f, indent=2)

    print(f"✅ Default scenario saved to {default_path}")
    return results


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    precompute_default_scenario()
