import json
import sys
from pathlib import Path
from typing import Dict, List

from arb_calc.models import ScenarioRequest

SRC_DIR = Path(__file__).resolve().parents[1] / "src"

# Runs the filter from the source tree in a child interpreter.
FILTER_COMMAND: List[str] = [
    sys.executable,
    "-c",
    f"import sys; sys.path.insert(0, {str(SRC_DIR)!r}); from arb_calc.filter import main; main()",
]


def request_fields(**overrides: str) -> Dict[str, str]:
    fields = {
        "amountIn": "1000",
        "quote1Out": "5000",
        "quote1MinOut": "4950",
        "quote2Out": "1100",
        "quote2MinOut": "1050",
        "minProfit": "40",
        "feeEstimateInInputUnits": "10",
    }
    fields.update(overrides)
    return fields


def request_line(**overrides: str) -> str:
    return json.dumps(request_fields(**overrides))


def scenario(**overrides: int) -> ScenarioRequest:
    values = dict(
        amount_in=1000,
        quote1_out=5000,
        quote1_min_out=4950,
        quote2_out=1100,
        quote2_min_out=1050,
        min_profit=40,
        fee_estimate=10,
    )
    values.update(overrides)
    return ScenarioRequest(**values)
