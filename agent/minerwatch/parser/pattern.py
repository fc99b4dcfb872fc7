import re
from typing import Optional

from .base import LineParser, Number, to_number


class PatternParser(LineParser):
    def __init__(self, name: str, pattern: str, kind: type = int):
        super().__init__(name, kind)
        self.pattern = re.compile(pattern, re.ASCII)

    def parse(self, line: str) -> Optional[Number]:
        match = self.pattern.search(line)
        if not match:
            return None
        return to_number(match.group(1), self.kind)
