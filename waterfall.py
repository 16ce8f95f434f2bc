"""
# waterfall.py (v1.0)
# Whole-fund carried interest on year-indexed cash flows"""

import numpy as np
from typing import Sequence, Tuple


def apply_carry(
    gross_cash_flows: Sequence[float],
    total_called: float,
    total_dist_gross: float,
    carry_rate: float,
) -> Tuple[np.ndarray, float, float]:
    """
    Applies a simple whole-fund carry to gross fund cash flows.

    The GP takes `carry_rate` of the fund's total profit (distributions less
    called capital), if any. There is no hurdle or catch-up. The carry is
    settled in the final year of the fund, so it is debited from the last
    entry of the cash-flow vector.

    Args:
        gross_cash_flows: Gross amounts indexed by year (index 0 = time 0)
        total_called: Total capital called from LPs
        total_dist_gross: Total gross distributions
        carry_rate: GP share of profit

    Returns:
        Tuple containing:
        - LP net cash flows (a new array, the input is left untouched)
        - Carry paid to the GP
        - Total distributions net of carry
    """
    profit = total_dist_gross - total_called
    carry_paid = max(profit, 0.0) * carry_rate
    total_dist_net = total_dist_gross - carry_paid

    net_cash_flows = np.array(gross_cash_flows, dtype=float)
    net_cash_flows[-1] -= carry_paid

    return net_cash_flows, carry_paid, total_dist_net
