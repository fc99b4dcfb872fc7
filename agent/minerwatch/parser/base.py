import math
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Union

Number = Union[int, float]

INTEGER_PATTERN = re.compile(r"[+-]?[0-9]{1,19}")
FLOAT_PATTERN = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")

# signed 64-bit, the range gauges are fed from
INT_MIN = -(2 ** 63)
INT_MAX = 2 ** 63 - 1


@dataclass(frozen=True)
class Sample:
    metric: str
    value: Number


def to_number(text: str, kind: type) -> Optional[Number]:
    """Convert captured text to int or float, returning None when it doesn't parse.

    Only ASCII digits are accepted. Integers outside the signed 64-bit range
    and non-finite floats count as no value.
    """
    if kind is int:
        if not INTEGER_PATTERN.fullmatch(text):
            return None
        value = int(text)
        if not INT_MIN <= value <= INT_MAX:
            return None
        return value

    if not FLOAT_PATTERN.fullmatch(text):
        return None
    value = float(text)
    if not math.isfinite(value):
        return None
    return value


class LineParser(ABC):
    def __init__(self, name: str, kind: type = int):
        self.name = name
        self.kind = kind

    @abstractmethod
    def parse(self, line: str) -> Optional[Number]:
        """Extract a numeric value from a log line, or None if the line carries none."""
        pass
