# tests/test_analysis_utils.py
import pandas as pd
import pytest

from analysis_utils import (
    results_to_dataframe, cash_flows_to_dataframe, summary_to_dataframe,
    build_tvpi_histogram, display_results_summary, export_results_to_excel
)
from engine import run_monte_carlo
from parameters import default_fund_parameters


@pytest.fixture(scope="module")
def results():
    return run_monte_carlo(default_fund_parameters(), num_simulations=120, seed=42)


def test_results_to_dataframe(results):
    df = results_to_dataframe(results)
    assert len(df) == 120
    assert df['simulation_number'].tolist() == list(range(1, 121))
    assert df['net_tvpi'].tolist() == [s.net_tvpi for s in results.simulations]
    assert 'cash_flows' not in df.columns


def test_cash_flows_to_dataframe(results):
    df = cash_flows_to_dataframe(results)
    # 11 entries (years 0-10) per run
    assert len(df) == 120 * 11
    first_run = df[df['simulation_number'] == 1]
    assert first_run['amount'].tolist() == results.simulations[0].cash_flows


def test_summary_to_dataframe(results):
    df = summary_to_dataframe(results)
    assert list(df.index) == ['gross_tvpi', 'net_tvpi', 'dpi_net', 'irr_net']
    assert df.loc['net_tvpi', 'p50'] == pytest.approx(results.summary.net_tvpi.p50)


def test_histogram_counts_every_run(results):
    histogram = build_tvpi_histogram(results)
    assert len(histogram) == 20
    assert histogram['count'].sum() == 120
    assert histogram['frequency'].sum() == pytest.approx(1.0)
    assert histogram['bin_start'].iloc[0] == pytest.approx(results.summary.net_tvpi.min)
    assert histogram['bin_end'].iloc[-1] == pytest.approx(results.summary.net_tvpi.max)


def test_display_results_summary(results, capsys):
    display_results_summary(results)
    out = capsys.readouterr().out
    assert "Median Net TVPI" in out
    assert "P(Return Fund)" in out


def test_export_results_to_excel(results, tmp_path):
    filename = tmp_path / "results.xlsx"
    sheets = export_results_to_excel(results, filename=str(filename))

    assert filename.exists()
    workbook = pd.read_excel(filename, sheet_name=None)
    assert set(workbook) == {'Simulations', 'Summary', 'Capital_Schedule', 'Cash_Flows'}
    assert len(workbook['Simulations']) == 120
    assert set(sheets) == set(workbook)
