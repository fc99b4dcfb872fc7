from typing import Optional

from .base import LineParser, Number, to_number


class KeywordColumnParser(LineParser):
    """Picks a whitespace-separated column from lines containing a keyword."""

    def __init__(self, name: str, keyword: str, column: int, kind: type = int):
        super().__init__(name, kind)
        self.keyword = keyword.lower()
        self.column = column

    def parse(self, line: str) -> Optional[Number]:
        if self.keyword not in line.lower():
            return None

        columns = line.split()
        if len(columns) <= self.column:
            return None

        return to_number(columns[self.column], self.kind)
