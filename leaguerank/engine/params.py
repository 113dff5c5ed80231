"""Learned composite parameters: bounds, class defaults and movement limits.

Four parameters tune how the weight profile and the power score behave. They
are learned per league class from backtest evidence and move slowly.

Key Concepts:

injury_influence: How much lineup health scales the power score.

starter_bench_split: Share of the power score driven by starters (the rest
comes from bench depth).

luck_dampening: Divides the luck weight (2.0 leaves it unchanged).

future_capital_influence: Shifts weight towards devy and prospect assets,
relative to a 0.05 baseline.

League classes: DYN_SF, DYN_1QB, RED_SF, RED_1QB, SPC (any non-standard
scoring format) and UNK. Each has its own defaults and its own learning
history.

Movement limit: A learning cycle may move each parameter at most 0.03 from
the previously applied value (0.30 for luck dampening), and never outside
its bounds.
"""

from dataclasses import asdict, dataclass, replace

PARAM_BOUNDS: dict[str, tuple[float, float]] = {
    "injury_influence": (0.10, 0.60),
    "starter_bench_split": (0.55, 0.90),
    "luck_dampening": (1.0, 4.0),
    "future_capital_influence": (0.00, 0.25),
}

# Luck dampening lives on a wider scale, so it may move ten times as far per cycle
MOVEMENT_SCALE: dict[str, float] = {"luck_dampening": 10.0}


@dataclass(frozen=True)
class LearnedParams:
    injury_influence: float = 0.30
    starter_bench_split: float = 0.75
    luck_dampening: float = 2.0
    future_capital_influence: float = 0.05

    def as_dict(self) -> dict[str, float]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, float]) -> "LearnedParams":
        known = {k: float(v) for k, v in data.items() if k in PARAM_BOUNDS}
        return cls(**known)

    def with_value(self, name: str, value: float) -> "LearnedParams":
        return replace(self, **{name: value})


CLASS_DEFAULTS: dict[str, LearnedParams] = {
    "DYN_SF": LearnedParams(0.30, 0.70, 2.0, 0.10),
    "DYN_1QB": LearnedParams(0.30, 0.70, 2.0, 0.10),
    "RED_SF": LearnedParams(0.30, 0.80, 2.0, 0.00),
    "RED_1QB": LearnedParams(0.30, 0.80, 2.0, 0.00),
    "SPC": LearnedParams(0.25, 0.75, 2.0, 0.05),
    "UNK": LearnedParams(0.30, 0.75, 2.0, 0.05),
}


def defaults_for_class(league_cls: str) -> LearnedParams:
    return CLASS_DEFAULTS.get(league_cls, CLASS_DEFAULTS["UNK"])


def clamp_to_bounds(params: LearnedParams) -> LearnedParams:
    values = {}
    for name, (lo, hi) in PARAM_BOUNDS.items():
        values[name] = max(lo, min(hi, getattr(params, name)))
    return LearnedParams(**values)


def clamp_movement(
    proposed: LearnedParams,
    previous: LearnedParams,
    max_delta: float = 0.03,
) -> LearnedParams:
    """Limit how far each parameter may move from the previously applied value.

    Example:
        previous split 0.70, proposed 0.90 -> 0.73
    """
    values = {}
    for name in PARAM_BOUNDS:
        limit = max_delta * MOVEMENT_SCALE.get(name, 1.0)
        prev = getattr(previous, name)
        delta = getattr(proposed, name) - prev
        values[name] = prev + max(-limit, min(limit, delta))
    return clamp_to_bounds(LearnedParams(**values))
