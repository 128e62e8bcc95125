from .errors import IntegerOverflowError
from .models import I128_MAX, I128_MIN, ScenarioRequest, Verdict


def _checked(value: int, step: str) -> int:
    if value < I128_MIN or value > I128_MAX:
        raise IntegerOverflowError(f"{step} overflowed the signed 128-bit range: {value}")
    return value


def net_proceeds(gross_out: int, request: ScenarioRequest, label: str) -> int:
    after_input = _checked(gross_out - request.amount_in, f"{label} - amountIn")
    return _checked(after_input - request.fee_estimate, f"{label} - amountIn - fee")


def evaluate(request: ScenarioRequest) -> Verdict:
    # quote1 figures are validated by the decoder but play no part here
    profit = net_proceeds(request.quote2_out, request, "quote2Out")
    conservative_profit = net_proceeds(request.quote2_min_out, request, "quote2MinOut")
    return Verdict(
        profitable=conservative_profit >= request.min_profit,
        profit=profit,
        conservative_profit=conservative_profit,
    )
