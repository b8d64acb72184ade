"""
Document tree produced by the feature-file parser.

All nodes are plain dataclasses. Line numbers are 1-based and are excluded
from equality so that a formatted-then-reparsed tree compares equal to the
original.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union


class StepKeywordType(Enum):
    """Normalized role of a step keyword, independent of language"""
    CONTEXT = "Context"
    ACTION = "Action"
    OUTCOME = "Outcome"
    CONJUNCTION = "Conjunction"
    UNKNOWN = "Unknown"


@dataclass
class Tag:
    name: str
    line: int = field(default=0, compare=False)


@dataclass
class Comment:
    text: str
    line: int = field(default=0, compare=False)


@dataclass
class Diagnostic:
    """A line the permissive parser skipped or could not fully understand"""
    line: int
    message: str

    def __str__(self) -> str:
        return f"line {self.line}: {self.message}"


@dataclass
class TableRow:
    cells: List[str]
    line: int = field(default=0, compare=False)


@dataclass
class DataTable:
    """
    Pipe-delimited table attached to a step.

    Row 0 is conventionally a header, but nothing here enforces it; the
    helpers that treat it as one say so.
    """
    rows: List[TableRow] = field(default_factory=list)

    def raw(self) -> List[List[str]]:
        """All rows as lists of strings, header included"""
        return [list(row.cells) for row in self.rows]

    def headers(self) -> List[str]:
        return list(self.rows[0].cells) if self.rows else []

    def body(self) -> List[List[str]]:
        """Rows after the header"""
        return self.raw()[1:]

    def as_dicts(self) -> List[Dict[str, str]]:
        """
        Use the first row as keys.

        | name  | age |
        | Alice | 30  |   ->   [{"name": "Alice", "age": "30"}]
        """
        headers = self.headers()
        result = []
        for row in self.body():
            result.append({key: row[i] if i < len(row) else "" for i, key in enumerate(headers)})
        return result

    def as_map(self) -> Dict[str, str]:
        """Two-column table as key -> value, no header"""
        mapping = {}
        for row in self.raw():
            if row:
                mapping[row[0]] = row[1] if len(row) > 1 else ""
        return mapping

    def column(self, index: int) -> List[str]:
        return [row.cells[index] if index < len(row.cells) else "" for row in self.rows]

    def transpose(self) -> List[List[str]]:
        raw = self.raw()
        if not raw:
            return []
        width = max(len(row) for row in raw)
        return [[row[c] if c < len(row) else "" for row in raw] for c in range(width)]

    @property
    def row_count(self) -> int:
        return len(self.rows)


@dataclass
class DocString:
    content: str
    media_type: Optional[str] = None
    delimiter: str = '"""'
    line: int = field(default=0, compare=False)


@dataclass
class Step:
    keyword: str
    keyword_type: StepKeywordType
    text: str
    data_table: Optional[DataTable] = None
    doc_string: Optional[DocString] = None
    line: int = field(default=0, compare=False)


@dataclass
class Examples:
    keyword: str
    name: str
    description: str = ""
    tags: List[Tag] = field(default_factory=list)
    table_header: Optional[TableRow] = None
    table_body: List[TableRow] = field(default_factory=list)
    line: int = field(default=0, compare=False)

    @property
    def column_names(self) -> List[str]:
        return list(self.table_header.cells) if self.table_header else []

    def row_values(self, row: TableRow) -> Dict[str, str]:
        """Map column names to the cells of one body row"""
        return {
            name: row.cells[i] if i < len(row.cells) else ""
            for i, name in enumerate(self.column_names)
        }


@dataclass
class Background:
    keyword: str
    name: str = ""
    description: str = ""
    steps: List[Step] = field(default_factory=list)
    line: int = field(default=0, compare=False)


@dataclass
class Scenario:
    keyword: str
    name: str
    description: str = ""
    tags: List[Tag] = field(default_factory=list)
    steps: List[Step] = field(default_factory=list)
    examples: List[Examples] = field(default_factory=list)
    line: int = field(default=0, compare=False)
    is_outline: bool = False

    @property
    def tag_names(self) -> List[str]:
        return [tag.name for tag in self.tags]


@dataclass
class Rule:
    keyword: str
    name: str
    description: str = ""
    tags: List[Tag] = field(default_factory=list)
    children: List[Union[Background, Scenario]] = field(default_factory=list)
    line: int = field(default=0, compare=False)

    @property
    def background(self) -> Optional[Background]:
        return _first_background(self.children)

    @property
    def scenarios(self) -> List[Scenario]:
        return [child for child in self.children if isinstance(child, Scenario)]


@dataclass
class Feature:
    keyword: str
    name: str
    description: str = ""
    tags: List[Tag] = field(default_factory=list)
    children: List[Union[Rule, Background, Scenario]] = field(default_factory=list)
    line: int = field(default=0, compare=False)
    language: str = "en"

    @property
    def background(self) -> Optional[Background]:
        return _first_background(self.children)

    @property
    def rules(self) -> List[Rule]:
        return [child for child in self.children if isinstance(child, Rule)]

    @property
    def scenarios(self) -> List[Scenario]:
        """Scenarios directly under the feature (not inside rules)"""
        return [child for child in self.children if isinstance(child, Scenario)]

    def all_scenarios(self) -> Iterator[Scenario]:
        for child in self.children:
            if isinstance(child, Scenario):
                yield child
            elif isinstance(child, Rule):
                yield from child.scenarios


@dataclass
class GherkinDocument:
    feature: Optional[Feature]
    comments: List[Comment] = field(default_factory=list, compare=False)
    uri: Optional[str] = field(default=None, compare=False)
    diagnostics: List[Diagnostic] = field(default_factory=list, compare=False)


def _first_background(children: Iterable) -> Optional[Background]:
    for child in children:
        if isinstance(child, Background):
            return child
    return None


CONCRETE_TYPES = (StepKeywordType.CONTEXT, StepKeywordType.ACTION, StepKeywordType.OUTCOME)


def resolve_keyword_types(
    steps: Iterable[Step],
    initial: StepKeywordType = StepKeywordType.CONTEXT,
) -> List[Tuple[Step, StepKeywordType]]:
    """
    Pair every step with its effective keyword type.

    Conjunction and Unknown steps take the type of the nearest preceding
    concrete step; the accumulator starts at ``initial``. The fold runs over
    whatever sequence it is given, so a Background followed by Scenario steps
    carries the last Background type into the Scenario.
    """
    resolved = []
    current = initial
    for step in steps:
        if step.keyword_type in CONCRETE_TYPES:
            current = step.keyword_type
        resolved.append((step, current))
    return resolved
