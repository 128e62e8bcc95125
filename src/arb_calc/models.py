from dataclasses import dataclass

I128_MIN = -(2**127)
I128_MAX = 2**127 - 1


@dataclass(frozen=True)
class ScenarioRequest:
    amount_in: int
    quote1_out: int
    quote1_min_out: int
    quote2_out: int
    quote2_min_out: int
    min_profit: int
    fee_estimate: int


@dataclass(frozen=True)
class Verdict:
    profitable: bool
    profit: int
    conservative_profit: int
