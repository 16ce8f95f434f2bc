# ==============================================================================
# --- Two-Stage Fund Model: Parameter Loader & Validator (v1.0) ---
# ==============================================================================

import math
import numbers
import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml
import jsonschema

from parameters import FundParameters, DEFAULT_FUND_PARAMS, FUND_PRESETS

DEFAULT_SCHEMA_PATH = Path(__file__).with_name('config.schema.json')
DEFAULT_NUM_SIMULATIONS = 5000

INTEGER_FIELDS = ('fund_life', 'mgmt_fee_full_years', 'target_conviction_count')

# Fields that must be fractions in [0, 1]
RATE_FIELDS = (
    'mgmt_fee_rate', 'carry', 'graduation_rate', 'follow_on_reserve_percent',
    'discovery_success_rate', 'conviction_success_rate',
)

# Fields that must be strictly positive
POSITIVE_FIELDS = ('fund_size', 'discovery_check_size', 'conviction_check_size')

# Exits are drawn from [4, fund_life] and follow-on is deployed in years 2-3
MIN_FUND_LIFE = 4


def _to_number(name: str, value: Any) -> float:
    """Normalizes a native or numpy number, Decimal or decimal string to float."""
    if isinstance(value, bool):
        raise ValueError(f"Logical Error: '{name}' must be numeric, got a boolean.")
    if isinstance(value, (numbers.Real, Decimal)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(Decimal(value.strip()))
        except ArithmeticError:
            raise ValueError(f"Logical Error: '{name}' is not a decimal number: {value!r}")
    raise ValueError(f"Logical Error: '{name}' must be numeric, got {type(value).__name__}.")


def _to_integer(name: str, value: Any) -> int:
    if isinstance(value, numbers.Integral) and not isinstance(value, bool):
        return int(value)
    number = _to_number(name, value)
    if not math.isfinite(number) or not number.is_integer():
        raise ValueError(f"Logical Error: '{name}' must be a whole number, got {value!r}.")
    return int(number)


def _normalize_values(values: Dict[str, Any]) -> Dict[str, Any]:
    normalized = {}
    for name, value in values.items():
        if name in INTEGER_FIELDS:
            normalized[name] = _to_integer(name, value)
        else:
            normalized[name] = _to_number(name, value)
    return normalized


def apply_preset(config: Dict[str, Any], preset_name: str) -> Dict[str, Any]:
    """Returns a copy of `config` with the named fund-size preset applied on top."""
    if preset_name not in FUND_PRESETS:
        raise ValueError(f"Unknown fund preset '{preset_name}'. Available: {', '.join(FUND_PRESETS)}")
    merged = dict(config)
    merged.update(FUND_PRESETS[preset_name])
    return merged


def total_management_fees(params: FundParameters) -> float:
    """Fees over the fund life: full rate for `mgmt_fee_full_years`, stepped down afterwards."""
    total_fees = 0.0
    for year in range(1, params.fund_life + 1):
        if year <= params.mgmt_fee_full_years:
            total_fees += params.mgmt_fee_rate * params.fund_size
        else:
            total_fees += params.mgmt_fee_stepdown * params.mgmt_fee_rate * params.fund_size
    return total_fees


def validate_fund_parameters(params: FundParameters) -> None:
    """
    Fails fast on configurations that would otherwise turn into NaN or
    Infinity deep inside the simulation. Raises ValueError.
    """
    for name, value in vars(params).items():
        if not isinstance(value, numbers.Real) or isinstance(value, bool) or not math.isfinite(value):
            raise ValueError(f"Logical Error: '{name}' must be a finite number, got {value!r}.")

    for name in INTEGER_FIELDS:
        value = getattr(params, name)
        if not isinstance(value, numbers.Integral):
            raise ValueError(f"Logical Error: '{name}' must be a whole number of type int, got {value!r}.")

    if not 0 < params.graduation_rate <= 1:
        raise ValueError(f"Logical Error: 'graduation_rate' must be in (0, 1]. Got: {params.graduation_rate}")

    for name in RATE_FIELDS:
        value = getattr(params, name)
        if not 0 <= value <= 1:
            raise ValueError(f"Logical Error: '{name}' must be a fraction in [0, 1]. Got: {value}")

    for name in POSITIVE_FIELDS:
        if getattr(params, name) <= 0:
            raise ValueError(f"Logical Error: '{name}' must be positive. Got: {getattr(params, name)}")

    if params.fund_life < MIN_FUND_LIFE:
        raise ValueError(f"Logical Error: 'fund_life' must be at least {MIN_FUND_LIFE} years. Got: {params.fund_life}")

    if params.target_conviction_count < 1:
        raise ValueError(f"Logical Error: 'target_conviction_count' must be at least 1. Got: {params.target_conviction_count}")

    if params.mgmt_fee_full_years < 0 or params.mgmt_fee_stepdown < 0:
        raise ValueError("Logical Error: 'mgmt_fee_full_years' and 'mgmt_fee_stepdown' must not be negative.")

    if params.conviction_check_min > params.conviction_check_max:
        raise ValueError(f"Logical Error: 'conviction_check_min' ({params.conviction_check_min}) "
                         f"exceeds 'conviction_check_max' ({params.conviction_check_max}).")

    # Fees must leave something to invest
    total_fees = total_management_fees(params)
    if total_fees >= params.fund_size:
        raise ValueError(f"Logical Error: management fees over the fund life ({total_fees:,.0f}) "
                         f"consume the whole fund ({params.fund_size:,.0f}).")


def normalize_fund_parameters(params: FundParameters) -> FundParameters:
    """
    Returns a copy of `params` with every field coerced to its numeric type.

    Accepts what external stores hand back: decimal strings, Decimals, numpy
    scalars and integral floats for the whole-number fields. Does not validate.
    """
    return FundParameters(**_normalize_values(vars(params)))


def parse_fund_parameters(config: Dict[str, Any]) -> FundParameters:
    """
    Builds a validated FundParameters from a plain mapping.

    Missing fields take their DEFAULT_FUND_PARAMS value. Values may be native
    numbers, Decimals or decimal strings (as stored by external collaborators)
    and are normalized before validation. An optional 'preset' key applies one
    of FUND_PRESETS before the explicit fields.
    """
    config = dict(config)
    preset_name = config.pop('preset', None)

    values = dict(DEFAULT_FUND_PARAMS)
    if preset_name:
        values = apply_preset(values, preset_name)

    unknown = set(config) - set(DEFAULT_FUND_PARAMS)
    if unknown:
        raise ValueError(f"Logical Error: unknown fund parameter(s): {', '.join(sorted(unknown))}")
    values.update(config)

    params = FundParameters(**_normalize_values(values))
    validate_fund_parameters(params)
    return params


def load_config(config_path: str, schema_path: Optional[str] = None) -> Tuple[FundParameters, Dict[str, Any]]:
    """
    Loads, validates (schema and logic), and processes a YAML configuration.

    Returns:
        Tuple of (FundParameters, simulation settings) where the settings hold
        'num_simulations' and 'seed' (None when the file leaves it out)
    """
    with open(config_path, 'r', encoding='utf-8') as f:
        config = yaml.safe_load(f) or {}

    # --- 1. Schema Validation ---
    schema_file = Path(schema_path) if schema_path else DEFAULT_SCHEMA_PATH
    try:
        with open(schema_file, 'r', encoding='utf-8') as f:
            schema = json.load(f)
    except FileNotFoundError:
        logging.warning("Schema file not found at %s. Skipping schema validation.", schema_file)
    else:
        jsonschema.validate(instance=config, schema=schema)
        logging.info("Configuration %s validated against %s.", config_path, schema_file)

    # --- 2. Logical Validation & Parsing ---
    fund_config = config.get('fund', {})
    params = parse_fund_parameters(fund_config)

    simulation_config = config.get('simulation', {})
    settings = {
        'num_simulations': _to_integer('num_simulations', simulation_config.get('num_simulations', DEFAULT_NUM_SIMULATIONS)),
        'seed': simulation_config.get('seed'),
    }
    if settings['num_simulations'] < 1:
        raise ValueError(f"Logical Error: 'num_simulations' must be at least 1. Got: {settings['num_simulations']}")
    if settings['seed'] is not None:
        settings['seed'] = _to_integer('seed', settings['seed'])

    logging.info("FundParameters object created successfully.")
    return params, settings


def load_parameters(config_path: str, schema_path: Optional[str] = None) -> FundParameters:
    """Loads the fund parameters from a YAML file, ignoring the simulation settings."""
    params, _ = load_config(config_path, schema_path)
    return params


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    print(load_parameters('config.yaml'))
