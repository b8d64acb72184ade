"""
Boolean tag expressions: ``(@smoke or @regression) and not @wip``.

Grammar (recursive descent, ``not`` binds tighter than ``and``, which binds
tighter than ``or``; both binary operators are left-associative)::

    expr    := or
    or      := and ('or' and)*
    and     := not ('and' not)*
    not     := 'not' not | primary
    primary := TAG | '(' expr ')'
"""

import re
from dataclasses import dataclass
from typing import Collection, Iterable, List, NamedTuple, Union

from ..core.exceptions import TagExpressionError

_OPERATOR = re.compile(r'(and|or|not)\b', re.IGNORECASE)
_TAG = re.compile(r'@[\w-]*')
_SINGLE_TAG = re.compile(r'@[\w-]+')


@dataclass(frozen=True)
class TagNode:
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class AndNode:
    left: "TagExpression"
    right: "TagExpression"

    def __str__(self) -> str:
        return f"({self.left} and {self.right})"


@dataclass(frozen=True)
class OrNode:
    left: "TagExpression"
    right: "TagExpression"

    def __str__(self) -> str:
        return f"({self.left} or {self.right})"


@dataclass(frozen=True)
class NotNode:
    operand: "TagExpression"

    def __str__(self) -> str:
        return f"not {self.operand}"


TagExpression = Union[TagNode, AndNode, OrNode, NotNode]


class Token(NamedTuple):
    kind: str  # TAG, AND, OR, NOT, LPAREN, RPAREN, EOF
    value: str
    position: int


def tokenize(text: str) -> List[Token]:
    tokens: List[Token] = []
    i = 0
    while i < len(text):
        char = text[i]
        if char.isspace():
            i += 1
            continue
        if char == '(':
            tokens.append(Token('LPAREN', char, i))
            i += 1
            continue
        if char == ')':
            tokens.append(Token('RPAREN', char, i))
            i += 1
            continue
        if char == '@':
            name = _TAG.match(text, i).group(0)
            if name == '@':
                raise TagExpressionError(f"Invalid tag expression: lone '@' at position {i} in \"{text}\"")
            tokens.append(Token('TAG', name, i))
            i += len(name)
            continue
        operator = _OPERATOR.match(text, i)
        if operator:
            word = operator.group(1)
            tokens.append(Token(word.upper(), word, i))
            i += len(word)
            continue
        raise TagExpressionError(
            f"Unexpected character '{char}' at position {i} in tag expression: \"{text}\""
        )
    tokens.append(Token('EOF', '', len(text)))
    return tokens


class TagExpressionParser:
    """Recursive-descent parser over a token list"""

    def __init__(self, tokens: List[Token], source: str = ""):
        self.tokens = tokens
        self.source = source
        self.pos = 0

    def parse(self) -> TagExpression:
        expression = self._parse_or()
        token = self._peek()
        if token.kind == 'RPAREN':
            raise TagExpressionError(
                f"Unmatched ')' at position {token.position} in tag expression: \"{self.source}\""
            )
        self._expect('EOF')
        return expression

    def _parse_or(self) -> TagExpression:
        left = self._parse_and()
        while self._peek().kind == 'OR':
            self._advance()
            left = OrNode(left, self._parse_and())
        return left

    def _parse_and(self) -> TagExpression:
        left = self._parse_not()
        while self._peek().kind == 'AND':
            self._advance()
            left = AndNode(left, self._parse_not())
        return left

    def _parse_not(self) -> TagExpression:
        if self._peek().kind == 'NOT':
            self._advance()
            return NotNode(self._parse_not())
        return self._parse_primary()

    def _parse_primary(self) -> TagExpression:
        token = self._peek()
        if token.kind == 'TAG':
            self._advance()
            return TagNode(token.value)
        if token.kind == 'LPAREN':
            self._advance()
            expression = self._parse_or()
            if self._peek().kind != 'RPAREN':
                raise TagExpressionError(
                    f"Unmatched '(' at position {token.position} in tag expression: \"{self.source}\""
                )
            self._advance()
            return expression
        found = 'end of expression' if token.kind == 'EOF' else f"'{token.value}'"
        raise TagExpressionError(
            f"Expected tag or '(' but got {found} at position {token.position} "
            f"in tag expression: \"{self.source}\""
        )

    def _peek(self) -> Token:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else self.tokens[-1]

    def _advance(self) -> Token:
        token = self._peek()
        self.pos += 1
        return token

    def _expect(self, kind: str) -> Token:
        token = self._peek()
        if token.kind != kind:
            raise TagExpressionError(
                f"Expected {kind} but got '{token.value}' at position {token.position} "
                f"in tag expression: \"{self.source}\""
            )
        return self._advance()


def parse_tag_expression(text: str) -> TagExpression:
    """
    Parse a tag expression into an immutable AST.

    Raises:
        TagExpressionError: empty text, unknown character, unexpected token or
            unmatched parenthesis
    """
    stripped = (text or "").strip()
    if not stripped:
        raise TagExpressionError("Empty tag expression")
    return TagExpressionParser(tokenize(stripped), stripped).parse()


def evaluate_tag_expression(expression: TagExpression, tags: Collection[str]) -> bool:
    """True when the expression holds for the given tag names (exact membership)"""
    if isinstance(expression, TagNode):
        return expression.name in tags
    if isinstance(expression, AndNode):
        return evaluate_tag_expression(expression.left, tags) and evaluate_tag_expression(expression.right, tags)
    if isinstance(expression, OrNode):
        return evaluate_tag_expression(expression.left, tags) or evaluate_tag_expression(expression.right, tags)
    if isinstance(expression, NotNode):
        return not evaluate_tag_expression(expression.operand, tags)
    raise TypeError(f"Not a tag expression: {expression!r}")


def matches_tags(text: str, tags: Iterable[str]) -> bool:
    """Parse and evaluate in one call"""
    return evaluate_tag_expression(parse_tag_expression(text), set(tags))


def is_single_tag(text: str) -> bool:
    return _SINGLE_TAG.fullmatch(text.strip()) is not None


def tags_match(filter_text: str, tags: Iterable[str]) -> bool:
    """
    Check a filter against a tag collection.

    A filter that is exactly one ``@name`` is a plain membership test; anything
    else goes through the full parser.
    """
    if is_single_tag(filter_text):
        return filter_text.strip() in set(tags)
    return matches_tags(filter_text, tags)


class TagFilter:
    """A filter compiled once and evaluated many times"""

    def __init__(self, text: str):
        self.text = text.strip()
        if is_single_tag(self.text):
            self.expression: TagExpression = TagNode(self.text)
        else:
            self.expression = parse_tag_expression(self.text)

    def matches(self, tags: Iterable[str]) -> bool:
        return evaluate_tag_expression(self.expression, set(tags))

    def __repr__(self) -> str:
        return f"TagFilter({self.text!r})"
