# analysis_utils.py

import pandas as pd
import numpy as np
from dataclasses import asdict
from typing import Dict

from parameters import MonteCarloResults
from engine import calculate_capital_schedule

RESULT_COLUMNS = [
    'total_called', 'total_dist_gross', 'total_dist_net', 'gross_tvpi', 'net_tvpi',
    'dpi_gross', 'dpi_net', 'irr_net', 'carry_paid', 'discovery_only_count',
    'conviction_count', 'follow_on_count', 'irr_converged',
]


def results_to_dataframe(results: MonteCarloResults) -> pd.DataFrame:
    """One row per simulated fund life, numbered from 1. Cash-flow vectors are left out."""
    df = pd.DataFrame(
        [{column: getattr(sim, column) for column in RESULT_COLUMNS} for sim in results.simulations],
        columns=RESULT_COLUMNS,
    )
    df.insert(0, 'simulation_number', np.arange(1, len(df) + 1))
    return df


def cash_flows_to_dataframe(results: MonteCarloResults) -> pd.DataFrame:
    """Long-format gross cash flows: one row per simulation and year."""
    rows = []
    for sim_num, sim in enumerate(results.simulations, 1):
        for year, amount in enumerate(sim.cash_flows):
            rows.append({'simulation_number': sim_num, 'year': year, 'amount': amount})
    return pd.DataFrame(rows, columns=['simulation_number', 'year', 'amount'])


def summary_to_dataframe(results: MonteCarloResults) -> pd.DataFrame:
    """Percentile summaries with one row per metric."""
    summary = results.summary
    df = pd.DataFrame({
        'gross_tvpi': asdict(summary.gross_tvpi),
        'net_tvpi': asdict(summary.net_tvpi),
        'dpi_net': asdict(summary.dpi_net),
        'irr_net': asdict(summary.irr_net),
    }).T
    df.index.name = 'metric'
    return df[['mean', 'min', 'p10', 'p25', 'p50', 'p75', 'p90', 'max']]


def build_tvpi_histogram(results: MonteCarloResults, bins: int = 20) -> pd.DataFrame:
    """
    Distribution of net TVPI across runs in `bins` equal-width bins between
    the minimum and maximum. The last bin includes the maximum.
    """
    net_tvpis = np.array([sim.net_tvpi for sim in results.simulations])
    counts, edges = np.histogram(net_tvpis, bins=bins)

    return pd.DataFrame({
        'range': [f"{start:.1f}x" for start in edges[:-1]],
        'bin_start': edges[:-1],
        'bin_end': edges[1:],
        'count': counts,
        'frequency': counts / results.num_simulations,
    })


def display_results_summary(results: MonteCarloResults):
    """
    Prints the headline figures of a Monte Carlo batch: median and mean net
    TVPI, median IRR, the 90th percentile and the threshold probabilities.
    """
    net_tvpi = results.summary.net_tvpi
    irr_net = results.summary.irr_net

    print("--- Monte Carlo Summary ---")
    print(f"Simulations: {results.num_simulations} (seed={results.seed})")
    print(f"Median Net TVPI: {net_tvpi.p50:.2f}x  (IQR {net_tvpi.p25:.2f}x - {net_tvpi.p75:.2f}x)")
    print(f"Mean Net TVPI: {net_tvpi.mean:.2f}x  ({results.summary.gross_tvpi.mean:.2f}x gross)")
    print(f"Median Net IRR: {irr_net.p50:.1%}  ({irr_net.mean:.1%} mean)")
    print(f"90th Percentile Net TVPI: {net_tvpi.p90:.2f}x")
    print("-" * 27)
    print(f"P(Return Fund) [TVPI >= 1.0x]: {results.prob_return_fund:.1%}")
    print(f"P(2x Return)   [TVPI >= 2.0x]: {results.prob_2x:.1%}")
    print(f"P(3x Return)   [TVPI >= 3.0x]: {results.prob_3x:.1%}")
    if results.irr_fallback_count:
        print(f"Note: net IRR set to 0% in {results.irr_fallback_count} run(s) with no IRR solution.")


def export_results_to_excel(results: MonteCarloResults, filename: str = "fund_simulation_results.xlsx") -> Dict[str, pd.DataFrame]:
    """
    Export Monte Carlo results to an Excel workbook.

    Sheets:
    - Simulations: per-run metrics
    - Summary: percentile summaries and threshold probabilities
    - Capital_Schedule: fee load, reserve and check totals of the configuration
    - Cash_Flows: gross cash flows per run and year

    Returns:
        Dict of the DataFrames written, keyed by sheet name
    """
    from openpyxl.utils import get_column_letter

    df_runs = results_to_dataframe(results)
    df_summary = summary_to_dataframe(results).reset_index()
    df_probabilities = pd.DataFrame({
        'metric': ['prob_return_fund', 'prob_2x', 'prob_3x', 'irr_fallback_count'],
        'value': [results.prob_return_fund, results.prob_2x, results.prob_3x, results.irr_fallback_count],
    })
    df_schedule = pd.DataFrame(
        list(calculate_capital_schedule(results.params).items()), columns=['item', 'value']
    )
    df_flows = cash_flows_to_dataframe(results)

    sheets = {
        'Simulations': df_runs,
        'Summary': df_summary,
        'Capital_Schedule': df_schedule,
        'Cash_Flows': df_flows,
    }

    with pd.ExcelWriter(filename, engine='openpyxl') as writer:
        df_runs.to_excel(writer, sheet_name='Simulations', index=False)
        df_summary.to_excel(writer, sheet_name='Summary', index=False)
        # Probabilities go under the summary table, one blank row apart
        df_probabilities.to_excel(writer, sheet_name='Summary', index=False, startrow=len(df_summary) + 2)
        df_schedule.to_excel(writer, sheet_name='Capital_Schedule', index=False)
        df_flows.to_excel(writer, sheet_name='Cash_Flows', index=False)

        # Currency formatting
        ws_runs = writer.sheets['Simulations']
        for col_name in ['total_called', 'total_dist_gross', 'total_dist_net', 'carry_paid']:
            col_letter = get_column_letter(df_runs.columns.get_loc(col_name) + 1)
            for row in range(2, len(df_runs) + 2):
                ws_runs[f'{col_letter}{row}'].number_format = '$#,##0'

        # Multiples and IRR
        for col_name in ['gross_tvpi', 'net_tvpi', 'dpi_gross', 'dpi_net']:
            col_letter = get_column_letter(df_runs.columns.get_loc(col_name) + 1)
            for row in range(2, len(df_runs) + 2):
                ws_runs[f'{col_letter}{row}'].number_format = '0.00"x"'
        irr_letter = get_column_letter(df_runs.columns.get_loc('irr_net') + 1)
        for row in range(2, len(df_runs) + 2):
            ws_runs[f'{irr_letter}{row}'].number_format = '0.0%'

        ws_flows = writer.sheets['Cash_Flows']
        amount_letter = get_column_letter(df_flows.columns.get_loc('amount') + 1)
        for row in range(2, len(df_flows) + 2):
            ws_flows[f'{amount_letter}{row}'].number_format = '$#,##0'

    print(f"Excel export complete: {filename}")
    print(f"  • Simulations: {len(df_runs)}")
    print(f"  • Cash flows: {len(df_flows)}")

    return sheets
