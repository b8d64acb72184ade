import re
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Pattern, Sequence, Tuple, Union

from ..bdd.models import StepKeywordType
from ..core.exceptions import DuplicateStepDefinitionError, StepDefinitionError

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r'\{(\w+)\}')


class StepRole(Enum):
    """Role a step definition is registered under"""
    GIVEN = "Given"
    WHEN = "When"
    THEN = "Then"
    ANY = "Any"

    @classmethod
    def coerce(cls, value: Union["StepRole", str]) -> "StepRole":
        if isinstance(value, cls):
            return value
        for role in cls:
            if role.value.lower() == str(value).strip().lower():
                return role
        raise StepDefinitionError(f"Unknown step role: {value!r}")

    @classmethod
    def for_keyword_type(cls, keyword_type: StepKeywordType) -> "StepRole":
        return _ROLE_BY_KEYWORD_TYPE.get(keyword_type, cls.ANY)


_ROLE_BY_KEYWORD_TYPE = {
    StepKeywordType.CONTEXT: StepRole.GIVEN,
    StepKeywordType.ACTION: StepRole.WHEN,
    StepKeywordType.OUTCOME: StepRole.THEN,
}


@dataclass(frozen=True)
class ParameterType:
    """A ``{name}`` placeholder: regex fragment with one capture group + transform"""
    name: str
    regex: str
    transform: Callable[[str], Any] = str


BUILT_IN_PARAMETER_TYPES: Dict[str, ParameterType] = {
    "string": ParameterType("string", r'"([^"]*)"'),
    "int": ParameterType("int", r'(-?\d+)', int),
    "float": ParameterType("float", r'(-?\d+\.\d+)', float),
    "word": ParameterType("word", r'(\S+)'),
    "any": ParameterType("any", r'(.*)'),
}


@dataclass
class StepDefinition:
    """Represents a step definition with its pattern and function"""
    role: StepRole
    pattern: Union[str, Pattern]
    regex: Pattern
    parameter_names: List[str]
    function: Callable
    tag_scope: Optional[str] = None
    location: Optional[str] = None
    description: str = ""

    @property
    def readable_pattern(self) -> str:
        return self.pattern if isinstance(self.pattern, str) else self.pattern.pattern

    def invoke(self, world: Any, *args: Any) -> Any:
        """Call the handler; the result may be an awaitable"""
        return self.function(world, *args)


@dataclass
class StepMatch:
    definition: StepDefinition
    args: List[Any] = field(default_factory=list)


class StepDefinitionRegistry:
    """
    Registry for step definitions.

    Patterns are either compiled regular expressions (used as-is) or strings
    with ``{type}`` placeholders, e.g. ``'I have {int} items'``. Matching walks
    definitions in registration order and the first hit wins.

    Example:
        registry = StepDefinitionRegistry()

        @registry.given('I am on {string}')
        async def open_page(world, url):
            await world.page.goto(url)
    """

    def __init__(self):
        self.definitions: List[StepDefinition] = []
        self._custom_parameter_types: Dict[str, ParameterType] = {}

    def register(
            self,
            role: Union[StepRole, str],
            pattern: Union[str, Pattern],
            function: Callable,
            tag_scope: Optional[str] = None,
            location: Optional[str] = None,
            description: str = "",
    ) -> StepDefinition:
        """
        Add a step definition to the registry.

        Raises:
            DuplicateStepDefinitionError: the compiled pattern is already
                registered for the same role
        """
        role = StepRole.coerce(role)
        regex, parameter_names = self.compile_pattern(pattern)
        location = location or _location_of(function)

        for existing in self.definitions:
            if existing.regex.pattern == regex.pattern and existing.role == role:
                where = f" at {location}" if location else ""
                raise DuplicateStepDefinitionError(
                    f'Duplicate step definition: {role.value} "{_readable(pattern)}"{where}. '
                    f'Already registered as "{existing.readable_pattern}"'
                    + (f" at {existing.location}" if existing.location else "")
                )

        definition = StepDefinition(
            role=role,
            pattern=pattern,
            regex=regex,
            parameter_names=parameter_names,
            function=function,
            tag_scope=tag_scope,
            location=location,
            description=description,
        )
        self.definitions.append(definition)
        logger.debug(f"Registered step: {role.value} {regex.pattern}")
        return definition

    def given(self, pattern: Union[str, Pattern], tag_scope: Optional[str] = None, description: str = ""):
        """Decorator for Given steps"""

        def decorator(func):
            self.register(StepRole.GIVEN, pattern, func, tag_scope=tag_scope, description=description)
            return func

        return decorator

    def when(self, pattern: Union[str, Pattern], tag_scope: Optional[str] = None, description: str = ""):
        """Decorator for When steps"""

        def decorator(func):
            self.register(StepRole.WHEN, pattern, func, tag_scope=tag_scope, description=description)
            return func

        return decorator

    def then(self, pattern: Union[str, Pattern], tag_scope: Optional[str] = None, description: str = ""):
        """Decorator for Then steps"""

        def decorator(func):
            self.register(StepRole.THEN, pattern, func, tag_scope=tag_scope, description=description)
            return func

        return decorator

    def step(self, pattern: Union[str, Pattern], tag_scope: Optional[str] = None, description: str = ""):
        """Decorator for steps that match under any keyword"""

        def decorator(func):
            self.register(StepRole.ANY, pattern, func, tag_scope=tag_scope, description=description)
            return func

        return decorator

    def define_parameter_type(self, name: str, regex: str,
                              transform: Optional[Callable[[str], Any]] = None) -> ParameterType:
        """
        Register a custom ``{name}`` placeholder.

        Built-in types are looked up first, so a custom type named like a
        built-in is stored but never used for matching.

        Args:
            name: Placeholder name
            regex: Regex fragment with at most one capture group
            transform: Converts the captured text; defaults to ``str``
        """
        try:
            compiled = re.compile(regex)
        except re.error as e:
            raise StepDefinitionError(f"Invalid regex for parameter type '{name}': {e}") from e

        if compiled.groups > 1:
            raise StepDefinitionError(
                f"Parameter type '{name}' must have at most one capture group, got {compiled.groups}"
            )
        if compiled.groups == 0:
            regex = f"({regex})"

        if name in BUILT_IN_PARAMETER_TYPES:
            logger.warning(f"Parameter type '{name}' is shadowed by the built-in type of the same name")

        parameter_type = ParameterType(name, regex, transform or str)
        self._custom_parameter_types[name] = parameter_type
        logger.debug(f"Defined parameter type {{{name}}} as {regex}")
        return parameter_type

    def parameter_type(self, name: str) -> Optional[ParameterType]:
        return BUILT_IN_PARAMETER_TYPES.get(name) or self._custom_parameter_types.get(name)

    def compile_pattern(self, pattern: Union[str, Pattern]) -> Tuple[Pattern, List[str]]:
        """Turn a pattern into an anchored regex plus its placeholder names"""
        if isinstance(pattern, re.Pattern):
            return pattern, []
        if not isinstance(pattern, str):
            raise StepDefinitionError(f"Step pattern must be a string or compiled regex, got {type(pattern).__name__}")

        parts = _PLACEHOLDER.split(pattern)
        names: List[str] = []
        regex = "^"
        for i, part in enumerate(parts):
            if i % 2 == 0:
                regex += re.escape(part)
                continue
            names.append(part)
            parameter_type = self.parameter_type(part)
            # Unknown placeholder names capture greedily and keep their name
            regex += parameter_type.regex if parameter_type else "(.*)"
        regex += "$"
        return re.compile(regex), names

    def match(self, text: str, role: Optional[Union[StepRole, str]] = None,
              tags: Optional[Iterable[str]] = None) -> Optional[StepMatch]:
        """
        Find the first definition matching the step text.

        Args:
            text: Step text without its keyword
            role: Requested role; definitions registered for another concrete
                role are skipped. ``None`` or ANY matches every role.
            tags: Effective scenario tags; when given, definitions scoped to a
                tag missing from this collection are skipped

        Returns:
            StepMatch with transformed arguments, or None
        """
        role = StepRole.coerce(role) if role is not None else StepRole.ANY
        tag_set = set(tags) if tags is not None else None

        for definition in self.definitions:
            if definition.role is not StepRole.ANY and role is not StepRole.ANY and definition.role is not role:
                continue
            if definition.tag_scope and tag_set is not None and definition.tag_scope not in tag_set:
                continue

            found = definition.regex.search(text)
            if found:
                logger.debug(f"Matched '{text}' to {definition.role.value} {definition.readable_pattern}")
                return StepMatch(definition, self._transform(found.groups(), definition))

        return None

    def _transform(self, groups: Sequence[Optional[str]], definition: StepDefinition) -> List[Any]:
        args = []
        for i, raw in enumerate(groups):
            name = definition.parameter_names[i] if i < len(definition.parameter_names) else None
            parameter_type = self.parameter_type(name) if name else None
            if raw is None or parameter_type is None:
                args.append(raw)
            else:
                args.append(parameter_type.transform(raw))
        return args

    def suggest(self, text: str, limit: int = 3) -> List[StepDefinition]:
        """Definitions closest to the text by case-insensitive edit distance"""
        lowered = text.lower()
        ranked = sorted(
            self.definitions,
            key=lambda definition: edit_distance(lowered, definition.readable_pattern.lower()),
        )
        return ranked[:limit]

    def find_unmatched(self, texts: Iterable[str]) -> List[str]:
        return [text for text in texts if self.match(text) is None]

    def list_definitions(self) -> List[Dict[str, Any]]:
        """List all registered step definitions"""
        return [
            {
                'role': defn.role.value,
                'pattern': defn.readable_pattern,
                'regex': defn.regex.pattern,
                'function': getattr(defn.function, '__name__', repr(defn.function)),
                'tag_scope': defn.tag_scope,
                'description': defn.description,
            }
            for defn in self.definitions
        ]

    def clear(self):
        """Clear all registered definitions and custom parameter types"""
        self.definitions.clear()
        self._custom_parameter_types.clear()

    def __len__(self) -> int:
        return len(self.definitions)


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance: single-character insert, delete and substitute"""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (char_a != char_b),
            ))
        previous = current
    return previous[-1]


def _readable(pattern: Union[str, Pattern]) -> str:
    return pattern if isinstance(pattern, str) else pattern.pattern


def _location_of(function: Callable) -> Optional[str]:
    code = getattr(function, '__code__', None)
    if code is None:
        return None
    return f"{code.co_filename}:{code.co_firstlineno}"
