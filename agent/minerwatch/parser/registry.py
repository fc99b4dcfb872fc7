from dataclasses import dataclass
from typing import Dict

from .base import LineParser
from .column import KeywordColumnParser
from .pattern import PatternParser


@dataclass(frozen=True)
class Family:
    parser: LineParser
    default_metric: str
    description: str


# oula:   "... total 1 3000 ..."          -> column 3
# zkwork: "gpu[*]: (1m - 1234) ..."
# cysic:  "1min-proof-rate: 56"
FAMILIES: Dict[str, Family] = {
    "keyword-column": Family(
        parser=KeywordColumnParser("keyword-column", keyword="total", column=3),
        default_metric="oula_total",
        description="Total value from oula log",
    ),
    "gpu-rate": Family(
        parser=PatternParser("gpu-rate", r"gpu\[\*\]: \(1m - (\d+)"),
        default_metric="zkwork_gpu",
        description="GPU value from zkwork log",
    ),
    "proof-rate": Family(
        parser=PatternParser("proof-rate", r"1min-proof-rate: (\d+)"),
        default_metric="cysic_proof_rate",
        description="1min-proof-rate from cysic log",
    ),
    "instant-rate": Family(
        parser=PatternParser("instant-rate", r"instant rate: ([\d.]+)", kind=float),
        default_metric="instant_rate",
        description="Instant proof rate from prover log",
    ),
    "pool-rate": Family(
        parser=PatternParser("pool-rate", r"proof rate (\d+)/s"),
        default_metric="pool_proof_rate",
        description="Proof rate per second from pool log",
    ),
}


def get_family(name: str) -> Family:
    try:
        return FAMILIES[name]
    except KeyError:
        raise KeyError(f"Unknown log family '{name}' (known: {', '.join(sorted(FAMILIES))})") from None


def get_parser(name: str) -> LineParser:
    return get_family(name).parser
