import re
import logging
from pathlib import Path
from typing import List, Optional, Tuple, Union

from ..core.config import ConfigManager
from ..core.exceptions import GherkinParseError
from .languages import DEFAULT_LANGUAGE, ENGLISH, Dialect, get_dialect
from .models import (
    Background,
    Comment,
    DataTable,
    Diagnostic,
    DocString,
    Examples,
    Feature,
    GherkinDocument,
    Rule,
    Scenario,
    Step,
    StepKeywordType,
    TableRow,
    Tag,
)

logger = logging.getLogger(__name__)

LANGUAGE_DIRECTIVE = re.compile(r'^#\s*language:\s*(\S+)')
TAG_TOKEN = re.compile(r'@[\w-]+')
DOC_STRING_DELIMITERS = ('"""', '```')

_TABLE_ESCAPES = {'|': '|', 'n': '\n', '\\': '\\'}


class GherkinParser:
    """
    Parses feature-file text into a GherkinDocument.

    The parser is permissive: lines it does not understand are skipped and a
    missing Feature yields a document whose ``feature`` is None. Everything it
    skipped is listed in ``document.diagnostics``. With ``strict=True`` any
    diagnostic raises GherkinParseError instead.

    Example:
        parser = GherkinParser()
        document = parser.parse(text, uri="features/login.feature")
    """

    def __init__(self, default_language: str = DEFAULT_LANGUAGE, strict: bool = False):
        self.default_language = default_language
        self.strict = strict

    @classmethod
    def from_config_manager(cls, manager: Optional[ConfigManager] = None) -> "GherkinParser":
        """Build from the ``parser`` section (``default_language``, ``strict``)"""
        manager = manager or ConfigManager()
        section = manager.get_module_config('parser') or {}
        return cls(
            default_language=section.get('default_language') or DEFAULT_LANGUAGE,
            strict=bool(section.get('strict', False)),
        )

    def parse(self, text: str, uri: Optional[str] = None) -> GherkinDocument:
        """
        Parse feature-file text.

        Args:
            text: Raw feature-file content
            uri: Optional source identifier, copied onto the document

        Returns:
            GherkinDocument with feature, comments and diagnostics
        """
        lines = re.split(r'\r?\n', text)
        diagnostics: List[Diagnostic] = []

        language = self.default_language
        directive = LANGUAGE_DIRECTIVE.match(lines[0].strip()) if lines else None
        if directive:
            language = directive.group(1)

        dialect = get_dialect(language)
        if dialect is None:
            diagnostics.append(Diagnostic(1, f"Unknown language '{language}', using '{DEFAULT_LANGUAGE}'"))
            language, dialect = DEFAULT_LANGUAGE, ENGLISH

        state = _ParseState(lines, dialect, language, diagnostics)
        feature = state.parse_feature()

        document = GherkinDocument(
            feature=feature,
            comments=state.comments,
            uri=uri,
            diagnostics=diagnostics,
        )

        source = uri or "<text>"
        for diagnostic in diagnostics:
            logger.warning(f"{source}: {diagnostic}")

        if self.strict and diagnostics:
            raise GherkinParseError(
                f"{source}: {len(diagnostics)} problem(s), first at {diagnostics[0]}",
                diagnostics,
            )
        return document


class _ParseState:
    """Cursor over the lines of one document"""

    def __init__(self, lines: List[str], dialect: Dialect, language: str,
                 diagnostics: List[Diagnostic]):
        self.lines = lines
        self.pos = 0
        self.dialect = dialect
        self.language = language
        self.comments: List[Comment] = []
        self.diagnostics = diagnostics
        self.pending_tags: List[Tag] = []
        self.step_keywords = dialect.step_keywords()

    # -- cursor helpers -----------------------------------------------------

    def at_end(self) -> bool:
        return self.pos >= len(self.lines)

    def current(self) -> str:
        return self.lines[self.pos] if self.pos < len(self.lines) else ""

    def diagnose(self, message: str, line: Optional[int] = None) -> None:
        self.diagnostics.append(Diagnostic(line if line is not None else self.pos + 1, message))

    def skip_blank_and_comments(self) -> None:
        while not self.at_end():
            stripped = self.current().strip()
            if not stripped:
                self.pos += 1
            elif stripped.startswith('#'):
                if not (self.pos == 0 and LANGUAGE_DIRECTIVE.match(stripped)):
                    self.comments.append(Comment(stripped, self.pos + 1))
                self.pos += 1
            else:
                break

    # -- tags ---------------------------------------------------------------

    def collect_tags(self) -> None:
        for token in self.current().split():
            if token.startswith('#'):
                break
            if TAG_TOKEN.fullmatch(token):
                self.pending_tags.append(Tag(token, self.pos + 1))
            else:
                self.diagnose(f"Malformed tag '{token}' ignored")
        self.pos += 1

    def take_tags(self) -> List[Tag]:
        tags, self.pending_tags = self.pending_tags, []
        return tags

    def drop_tags(self, reason: str) -> None:
        if self.pending_tags:
            names = " ".join(tag.name for tag in self.pending_tags)
            self.diagnose(f"Tags {names} ignored: {reason}", self.pending_tags[0].line)
            self.pending_tags = []

    def tags_precede_examples(self) -> bool:
        for line in self.lines[self.pos:]:
            stripped = line.strip()
            if not stripped or stripped.startswith('#') or stripped.startswith('@'):
                continue
            return self.match_keyword(stripped, self.dialect.examples) is not None
        return False

    # -- keyword matching ---------------------------------------------------

    @staticmethod
    def match_keyword(line: str, keywords: List[str]) -> Optional[Tuple[str, str]]:
        for keyword in keywords:
            if line.startswith(f"{keyword}:"):
                return keyword, line[len(keyword) + 1:].strip()
        return None

    def match_step(self, line: str) -> Optional[Tuple[str, StepKeywordType, str]]:
        if line.startswith('* '):
            return '*', StepKeywordType.UNKNOWN, line[2:].strip()
        for keyword, keyword_type in self.step_keywords.items():
            if line.startswith(f"{keyword} "):
                return keyword, keyword_type, line[len(keyword) + 1:].strip()
        return None

    def starts_element(self, stripped: str) -> bool:
        if stripped.startswith(('@', '|') + DOC_STRING_DELIMITERS):
            return True
        if self.match_keyword(stripped, self.dialect.structural_keywords):
            return True
        return self.match_step(stripped) is not None

    # -- structure ----------------------------------------------------------

    def parse_feature(self) -> Optional[Feature]:
        match = None
        while True:
            self.skip_blank_and_comments()
            if self.at_end():
                break
            stripped = self.current().strip()
            if stripped.startswith('@'):
                self.collect_tags()
                continue
            match = self.match_keyword(stripped, self.dialect.feature)
            if match:
                break
            self.diagnose(f"Unexpected line before Feature skipped: {stripped}")
            self.pos += 1

        if match is None:
            self.drop_tags("no Feature follows them")
            self.diagnose("No Feature found", len(self.lines))
            return None

        keyword, name = match
        line = self.pos + 1
        tags = self.take_tags()
        self.pos += 1
        description = self.collect_description()

        children: List[Union[Rule, Background, Scenario]] = []
        while True:
            self.skip_blank_and_comments()
            if self.at_end():
                break
            stripped = self.current().strip()
            if stripped.startswith('@'):
                self.collect_tags()
                continue
            rule_match = self.match_keyword(stripped, self.dialect.rule)
            if rule_match:
                children.append(self.parse_rule(rule_match))
                continue
            child = self.parse_child(stripped)
            if child is not None:
                children.append(child)
                continue
            self.diagnose(f"Unrecognized line skipped: {stripped}")
            self.pos += 1

        self.drop_tags("no element follows them")
        return Feature(
            keyword=keyword,
            name=name,
            description=description,
            tags=tags,
            children=children,
            line=line,
            language=self.language,
        )

    def parse_rule(self, match: Tuple[str, str]) -> Rule:
        keyword, name = match
        line = self.pos + 1
        tags = self.take_tags()
        self.pos += 1
        description = self.collect_description()

        children: List[Union[Background, Scenario]] = []
        while True:
            self.skip_blank_and_comments()
            if self.at_end():
                break
            stripped = self.current().strip()
            if stripped.startswith('@'):
                self.collect_tags()
                continue
            if (self.match_keyword(stripped, self.dialect.rule)
                    or self.match_keyword(stripped, self.dialect.feature)):
                break
            child = self.parse_child(stripped)
            if child is not None:
                children.append(child)
                continue
            self.diagnose(f"Unrecognized line skipped: {stripped}")
            self.pos += 1

        return Rule(
            keyword=keyword,
            name=name,
            description=description,
            tags=tags,
            children=children,
            line=line,
        )

    def parse_child(self, stripped: str) -> Optional[Union[Background, Scenario]]:
        if match := self.match_keyword(stripped, self.dialect.background):
            return self.parse_background(match)
        if match := self.match_keyword(stripped, self.dialect.scenario_outline):
            return self.parse_scenario(match, is_outline=True)
        if match := self.match_keyword(stripped, self.dialect.scenario):
            return self.parse_scenario(match, is_outline=False)
        return None

    def parse_background(self, match: Tuple[str, str]) -> Background:
        keyword, name = match
        line = self.pos + 1
        self.drop_tags("a Background cannot be tagged")
        self.pos += 1
        description = self.collect_description()
        steps = self.parse_steps()
        return Background(keyword=keyword, name=name, description=description, steps=steps, line=line)

    def parse_scenario(self, match: Tuple[str, str], is_outline: bool) -> Scenario:
        keyword, name = match
        line = self.pos + 1
        tags = self.take_tags()
        self.pos += 1
        description = self.collect_description()
        steps = self.parse_steps()

        examples: List[Examples] = []
        while True:
            self.skip_blank_and_comments()
            if self.at_end():
                break
            stripped = self.current().strip()
            examples_match = self.match_keyword(stripped, self.dialect.examples)
            if examples_match:
                examples.append(self.parse_examples(examples_match))
                continue
            # Tags directly above an Examples block belong to it, not to the
            # next scenario.
            if stripped.startswith('@') and self.tags_precede_examples():
                self.collect_tags()
                continue
            break

        return Scenario(
            keyword=keyword,
            name=name,
            description=description,
            tags=tags,
            steps=steps,
            examples=examples,
            line=line,
            is_outline=is_outline,
        )

    def parse_examples(self, match: Tuple[str, str]) -> Examples:
        keyword, name = match
        line = self.pos + 1
        tags = self.take_tags()
        self.pos += 1
        description = self.collect_description()
        self.skip_blank_and_comments()
        rows = self.parse_table_rows()
        return Examples(
            keyword=keyword,
            name=name,
            description=description,
            tags=tags,
            table_header=rows[0] if rows else None,
            table_body=rows[1:],
            line=line,
        )

    def parse_steps(self) -> List[Step]:
        steps: List[Step] = []
        while True:
            self.skip_blank_and_comments()
            if self.at_end():
                break
            match = self.match_step(self.current().strip())
            if match is None:
                break

            keyword, keyword_type, text = match
            line = self.pos + 1
            self.pos += 1

            data_table = None
            doc_string = None
            self.skip_blank_and_comments()
            if not self.at_end():
                following = self.current().strip()
                if following.startswith('|'):
                    data_table = DataTable(self.parse_table_rows())
                elif following.startswith(DOC_STRING_DELIMITERS):
                    doc_string = self.parse_doc_string()

            steps.append(Step(
                keyword=keyword,
                keyword_type=keyword_type,
                text=text,
                data_table=data_table,
                doc_string=doc_string,
                line=line,
            ))
        return steps

    def parse_table_rows(self) -> List[TableRow]:
        rows: List[TableRow] = []
        while not self.at_end():
            stripped = self.current().strip()
            if stripped.startswith('|'):
                rows.append(TableRow(split_table_row(stripped), self.pos + 1))
            elif stripped.startswith('#') and rows:
                self.comments.append(Comment(stripped, self.pos + 1))
            else:
                break
            self.pos += 1
        return rows

    def parse_doc_string(self) -> DocString:
        opening = self.current()
        line = self.pos + 1
        stripped = opening.strip()
        delimiter = '"""' if stripped.startswith('"""') else '```'
        media_type = stripped[len(delimiter):].strip() or None
        indent = opening.index(delimiter)
        escaped_delimiter = '\\' + '\\'.join(delimiter)
        self.pos += 1

        content: List[str] = []
        closed = False
        while not self.at_end():
            raw = self.current()
            self.pos += 1
            if raw.strip() == delimiter:
                closed = True
                break
            content.append(deindent(raw, indent).replace(escaped_delimiter, delimiter))

        if not closed:
            while content and not content[-1].strip():
                content.pop()
            self.diagnose(f"Doc string opened with {delimiter} is never closed", line)

        return DocString(
            content="\n".join(content),
            media_type=media_type,
            delimiter=delimiter,
            line=line,
        )

    def collect_description(self) -> str:
        lines: List[str] = []
        while not self.at_end():
            stripped = self.current().strip()
            if stripped.startswith('#'):
                self.comments.append(Comment(stripped, self.pos + 1))
                self.pos += 1
                continue
            if self.starts_element(stripped):
                break
            lines.append(stripped)
            self.pos += 1
        return "\n".join(lines).strip("\n")


def split_table_row(line: str) -> List[str]:
    """
    Split one ``| a | b |`` row into cell values.

    Cells are separated by unescaped pipes; ``\\|``, ``\\n`` and ``\\\\`` are
    unescaped inside cells.
    """
    inner = line.strip()
    if inner.startswith('|'):
        inner = inner[1:]

    cells: List[str] = []
    current: List[str] = []
    after_separator = False
    i = 0
    while i < len(inner):
        char = inner[i]
        if char == '\\' and i + 1 < len(inner) and inner[i + 1] in _TABLE_ESCAPES:
            current.append(_TABLE_ESCAPES[inner[i + 1]])
            after_separator = False
            i += 2
            continue
        if char == '|':
            cells.append("".join(current).strip(" \t"))
            current = []
            after_separator = True
        else:
            current.append(char)
            if not char.isspace():
                after_separator = False
        i += 1

    if not after_separator:
        cells.append("".join(current).strip(" \t"))
    return cells


def deindent(line: str, indent: int) -> str:
    """Remove up to ``indent`` leading whitespace characters"""
    count = 0
    while count < indent and count < len(line) and line[count] in ' \t':
        count += 1
    return line[count:]


def parse_feature(text: str, uri: Optional[str] = None, strict: bool = False,
                  language: str = DEFAULT_LANGUAGE) -> GherkinDocument:
    """Parse feature-file text with a one-off parser"""
    return GherkinParser(default_language=language, strict=strict).parse(text, uri=uri)


def parse_feature_file(path: Union[str, Path], strict: bool = False,
                       language: str = DEFAULT_LANGUAGE) -> GherkinDocument:
    """Read and parse a single .feature file"""
    path = Path(path)
    with open(path, 'r', encoding='utf-8') as f:
        content = f.read()
    return parse_feature(content, uri=str(path), strict=strict, language=language)
