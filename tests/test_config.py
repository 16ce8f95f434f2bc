# tests/test_config.py
import textwrap
from decimal import Decimal
from pathlib import Path

import jsonschema
import numpy as np
import pytest

from parameters import FundParameters, DEFAULT_FUND_PARAMS, default_fund_parameters
from parameters_loader import (
    parse_fund_parameters, validate_fund_parameters, normalize_fund_parameters, total_management_fees,
    apply_preset, load_config, load_parameters
)

REPO_ROOT = Path(__file__).resolve().parent.parent


@pytest.fixture
def write_config(tmp_path):
    """Writes a YAML config to a temporary file and returns its path."""
    def _write(content):
        path = tmp_path / "config.yaml"
        path.write_text(textwrap.dedent(content), encoding='utf-8')
        return str(path)
    return _write


# --- Parsing & normalization ---

def test_empty_mapping_gives_defaults():
    assert parse_fund_parameters({}) == FundParameters(**DEFAULT_FUND_PARAMS)


def test_decimal_strings_are_normalized():
    params = parse_fund_parameters({
        'fund_size': '40000000.00',
        'fund_life': '12',
        'graduation_rate': Decimal('0.20'),
        'carry': ' 0.25 ',
    })
    assert params.fund_size == 40_000_000.0
    assert params.fund_life == 12 and isinstance(params.fund_life, int)
    assert params.graduation_rate == pytest.approx(0.20)
    assert isinstance(params.graduation_rate, float)
    assert params.carry == pytest.approx(0.25)


def test_whole_number_strings_for_integer_fields():
    assert parse_fund_parameters({'target_conviction_count': '30.0'}).target_conviction_count == 30


def test_fractional_integer_field_is_rejected():
    with pytest.raises(ValueError, match="whole number"):
        parse_fund_parameters({'fund_life': '10.5'})


def test_non_numeric_value_is_rejected():
    with pytest.raises(ValueError):
        parse_fund_parameters({'fund_size': 'twenty million'})
    with pytest.raises(ValueError):
        parse_fund_parameters({'carry': True})


def test_unknown_field_is_rejected():
    with pytest.raises(ValueError, match="unknown fund parameter"):
        parse_fund_parameters({'hurdle_rate': 0.08})


# --- Presets ---

def test_preset_applies_before_explicit_fields():
    params = parse_fund_parameters({'preset': '40M', 'target_conviction_count': 28})
    assert params.fund_size == 40_000_000
    assert params.follow_on_reserve_percent == pytest.approx(0.30)
    assert params.target_conviction_count == 28


def test_apply_preset_leaves_other_fields():
    merged = apply_preset(DEFAULT_FUND_PARAMS, '16M')
    assert merged['fund_size'] == 16_000_000
    assert merged['target_conviction_count'] == 17
    assert merged['carry'] == DEFAULT_FUND_PARAMS['carry']
    assert DEFAULT_FUND_PARAMS['fund_size'] == 25_000_000


def test_unknown_preset():
    with pytest.raises(ValueError, match="Unknown fund preset"):
        apply_preset({}, '100M')


# --- Logical validation ---

@pytest.mark.parametrize("overrides", [
    {'graduation_rate': 0.0},
    {'graduation_rate': -0.1},
    {'graduation_rate': 1.5},
    {'fund_life': 0},
    {'fund_life': 3},
    {'fund_size': 0},
    {'target_conviction_count': 0},
    {'discovery_check_size': 0},
    {'conviction_check_size': -1},
    {'carry': 1.2},
    {'follow_on_reserve_percent': float('nan')},
    {'mgmt_fee_stepdown': -0.5},
    {'fund_life': 10.0},
    {'target_conviction_count': 22.5},
    {'conviction_check_min': 800_000},
    # 10 years at 15% eats more than the whole fund
    {'mgmt_fee_rate': 0.15, 'mgmt_fee_full_years': 10},
])
def test_invalid_configurations_raise(overrides):
    with pytest.raises(ValueError, match="Logical Error"):
        validate_fund_parameters(default_fund_parameters(**overrides))


def test_default_configuration_is_valid():
    validate_fund_parameters(default_fund_parameters())


def test_numpy_scalars_are_valid():
    validate_fund_parameters(default_fund_parameters(
        target_conviction_count=np.int64(22), fund_life=np.int32(10), carry=np.float64(0.2)
    ))


def test_fees_equal_to_fund_size_rejected():
    # 10 years at 10% is exactly the fund
    with pytest.raises(ValueError, match="management fees"):
        validate_fund_parameters(default_fund_parameters(mgmt_fee_rate=0.1, mgmt_fee_full_years=10))


def test_total_management_fees():
    # 4 years at 2% + 6 years at 0.7 * 2% on $25M
    assert total_management_fees(default_fund_parameters()) == pytest.approx(4_100_000)


def test_normalize_fund_parameters():
    raw = default_fund_parameters(
        fund_size="25000000", graduation_rate=Decimal("0.25"), fund_life=10.0, target_conviction_count=np.int64(22)
    )
    params = normalize_fund_parameters(raw)

    assert params == default_fund_parameters()
    assert type(params.fund_size) is float
    assert type(params.fund_life) is int
    assert type(params.target_conviction_count) is int
    # The input is left untouched
    assert raw.fund_size == "25000000"


def test_normalize_rejects_fractional_counts():
    with pytest.raises(ValueError, match="whole number"):
        normalize_fund_parameters(default_fund_parameters(fund_life=10.5))


# --- YAML loading ---

def test_repository_config_matches_defaults():
    params, settings = load_config(str(REPO_ROOT / 'config.yaml'))
    assert params == FundParameters(**DEFAULT_FUND_PARAMS)
    assert settings == {'num_simulations': 5000, 'seed': 42}


def test_load_config_with_preset_and_strings(write_config):
    path = write_config("""
        fund:
          preset: 16M
          fund_size: "18000000"
        simulation:
          num_simulations: 250
    """)
    params, settings = load_config(path)
    assert params.fund_size == 18_000_000
    assert params.target_conviction_count == 17
    assert settings == {'num_simulations': 250, 'seed': None}


def test_load_parameters_returns_fund_only(write_config):
    path = write_config("""
        fund:
          graduation_rate: 0.2
    """)
    assert load_parameters(path).graduation_rate == pytest.approx(0.2)


def test_schema_rejects_unknown_keys(write_config):
    path = write_config("""
        fund:
          management_fee: 0.02
    """)
    with pytest.raises(jsonschema.ValidationError):
        load_config(path)


def test_schema_rejects_non_numeric_strings(write_config):
    path = write_config("""
        fund:
          fund_size: "lots"
    """)
    with pytest.raises(jsonschema.ValidationError):
        load_config(path)


def test_missing_schema_skips_validation(write_config, tmp_path, caplog):
    path = write_config("""
        fund:
          carry: 0.25
    """)
    params = load_parameters(path, schema_path=str(tmp_path / 'missing.schema.json'))
    assert params.carry == pytest.approx(0.25)
    assert "Skipping schema validation" in caplog.text


def test_logical_errors_surface_from_yaml(write_config):
    path = write_config("""
        fund:
          graduation_rate: 0
    """)
    with pytest.raises(ValueError, match="graduation_rate"):
        load_config(path)
