"""
Query language for filtering and sorting bookmarks.

A query is a sequence of ``action:argument`` terms, e.g.::

    tagged:python site:github.com visit-count:>5 by:most-visited limit:10

Each term compiles to a stage: a pure function from a sequence of
bookmarks to a list of bookmarks. Stages run in order, each on the
output of the previous one. Every term is compiled before anything runs,
so an invalid term rejects the whole query.

New actions are added with the @register_action decorator.
"""

import logging
import operator
import re
import shlex
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Iterable, Optional, Sequence

from .dates import parse_date, strip_time
from .errors import QueryError
from .types import (
    BY_TITLE,
    BY_URL,
    MOST_RECENTLY_CREATED_FIRST,
    MOST_RECENTLY_MODIFIED_FIRST,
    MOST_RECENTLY_VISITED_FIRST,
    MOST_VISITED_FIRST,
    Bookmark,
    SortOrder,
    normalize_tag,
)

logger = logging.getLogger(__name__)

Stage = Callable[[Sequence[Bookmark]], list[Bookmark]]
StageFactory = Callable[["QueryTerm"], Stage]

# Splits an argument that may start with a comparison operator into
# "op" (possibly absent) and "arg" (the non-empty rest)
COMPARISON_SPLITTER = re.compile(r"^(?P<op>==|=|<=|<|>=|>)?(?P<arg>.+)$")

_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "": operator.eq,
    "=": operator.eq,
    "==": operator.eq,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}


@dataclass(frozen=True)
class QueryTerm:
    """A single parsed ``action:argument`` unit of a query."""
    action: str
    arg: str

    @classmethod
    def parse(cls, text: str) -> "QueryTerm":
        """Split ``action:arg``. A bare word is shorthand for ``tagged:word``."""
        action, sep, arg = text.partition(":")
        if not sep:
            return cls("tagged", text)
        return cls(action.strip().lower(), arg.strip())

    def __str__(self) -> str:
        return f"{self.action}:{self.arg}"


def tokenize(text: str) -> list[QueryTerm]:
    """
    Split a query string into terms.

    Terms are whitespace-separated; quote an argument containing spaces,
    e.g. ``created:">=3 days ago"``.

    Raises:
        QueryError: If the quoting is unbalanced
    """
    try:
        words = shlex.split(text or "")
    except ValueError as e:
        raise QueryError(f"invalid query '{text}': {e}") from e
    return [QueryTerm.parse(w) for w in words]


def comparison(op: Optional[str]) -> Callable[[Any, Any], bool]:
    """
    Return a predicate (a, b) -> "a OP b" for OP in =, ==, <, <=, >, >=.

    None or "" means equality. If either side is None the predicate is
    False, for every operator: an absent field never matches.

    Raises:
        QueryError: For any other operator
    """
    try:
        compare = _OPERATORS[op or ""]
    except KeyError:
        raise QueryError(f"invalid comparison operator '{op}'") from None
    return lambda a, b: a is not None and b is not None and compare(a, b)


def _split_comparison(term: "QueryTerm") -> tuple[Callable[[Any, Any], bool], str]:
    m = COMPARISON_SPLITTER.match(term.arg)
    if not m:
        raise QueryError(f"invalid {term.action} param '{term.arg}'", str(term))
    return comparison(m.group("op")), m.group("arg")


def _as_int(term: "QueryTerm", text: str) -> int:
    try:
        return int(text.strip())
    except ValueError:
        raise QueryError(f"invalid {term.action} param '{term.arg}': not a number", str(term)) from None


def _filter(predicate: Callable[[Bookmark], bool]) -> Stage:
    return lambda bookmarks: [b for b in bookmarks if predicate(b)]


# -----------------------------------------------------------------------------
# Action registry
# -----------------------------------------------------------------------------

_ACTIONS: dict[str, StageFactory] = {}


def register_action(name: str, *aliases: str) -> Callable[[StageFactory], StageFactory]:
    """Register a stage factory under an action name and any aliases."""
    def decorator(factory: StageFactory) -> StageFactory:
        for n in (name, *aliases):
            _ACTIONS[n] = factory
        return factory
    return decorator


def actions() -> list[str]:
    """Names of all registered actions, aliases included."""
    return sorted(_ACTIONS)


def compile_term(term: QueryTerm) -> Stage:
    """
    Compile a term into a stage.

    Raises:
        QueryError: For an unknown action or an invalid argument
    """
    factory = _ACTIONS.get(term.action)
    if factory is None:
        raise QueryError(f"invalid query action '{term.action}'", str(term))
    return factory(term)


@register_action("is")
def _is(term: QueryTerm) -> Stage:
    arg = term.arg.lower()
    if arg == "untagged":
        return _filter(lambda b: not b.tags)
    if arg == "tagged":
        return _filter(lambda b: bool(b.tags))
    raise QueryError(f"invalid argument for 'is' query: '{arg}'", str(term))


@register_action("tagged", "tag")
def _tagged(term: QueryTerm) -> Stage:
    try:
        tag = normalize_tag(term.arg)
    except ValueError:
        raise QueryError(f"invalid {term.action} param '{term.arg}'", str(term)) from None
    return _filter(lambda b: tag in b.tags)


@register_action("site")
def _site(term: QueryTerm) -> Stage:
    site = term.arg.strip().lower()
    if not site:
        raise QueryError(f"invalid {term.action} param '{term.arg}'", str(term))
    suffix = "." + site

    def matches(b: Bookmark) -> bool:
        # Unparseable URLs have no host and never match
        host = b.locator.host
        return host is not None and (host == site or host.endswith(suffix))

    return _filter(matches)


@register_action("visit-count")
def _visit_count(term: QueryTerm) -> Stage:
    compare, arg = _split_comparison(term)
    count = _as_int(term, arg)
    return _filter(lambda b: compare(b.visit_count, count))


@register_action("limit")
def _limit(term: QueryTerm) -> Stage:
    n = _as_int(term, term.arg)
    if n < 0:
        raise QueryError(f"invalid {term.action} param '{term.arg}': must not be negative", str(term))
    return lambda bookmarks: list(bookmarks)[:n]


def _orders(*bases: SortOrder) -> dict[str, SortOrder]:
    """Each "most-X" order plus its reversed "least-X" twin."""
    result = {}
    for base in bases:
        result[base.name] = base
        least = "least-" + base.name.removeprefix("most-")
        result[least] = base.reversed(least)
    return result


SORT_ORDERS: dict[str, SortOrder] = {
    **_orders(
        MOST_RECENTLY_CREATED_FIRST,
        MOST_RECENTLY_VISITED_FIRST,
        MOST_RECENTLY_MODIFIED_FIRST,
        MOST_VISITED_FIRST,
    ),
    BY_TITLE.name: BY_TITLE,
    BY_URL.name: BY_URL,
}


@register_action("by", "sort")
def _by(term: QueryTerm) -> Stage:
    name = term.arg.strip().lower()
    order = SORT_ORDERS.get(name)
    if order is None:
        raise QueryError(f"invalid sort order '{name}'", str(term))
    return order.sort


def _date_action(field: Callable[[Bookmark], Optional[datetime]]) -> StageFactory:
    def factory(term: QueryTerm) -> Stage:
        compare, text = _split_comparison(term)
        try:
            when: date = parse_date(text)
        except ValueError as e:
            raise QueryError(str(e), str(term)) from None
        return _filter(lambda b: compare(strip_time(field(b)), when))
    return factory


register_action("created")(_date_action(lambda b: b.created))
register_action("last-visited", "visited")(_date_action(lambda b: b.last_visited))
register_action("last-modified", "modified")(_date_action(lambda b: b.modified))


# -----------------------------------------------------------------------------
# Queries
# -----------------------------------------------------------------------------

class Query:
    """
    A compiled query: terms and the stages they compiled to.

    Calling a Query runs its stages over a snapshot of bookmarks.
    Compiling the same terms again gives an equivalent query.
    """

    def __init__(self, terms: Iterable[QueryTerm]):
        """
        Raises:
            QueryError: If any term fails to compile
        """
        self.terms = tuple(terms)
        self._stages = [compile_term(t) for t in self.terms]

    @classmethod
    def parse(cls, text: str) -> "Query":
        """Tokenize and compile a query string."""
        return cls(tokenize(text))

    @classmethod
    def of(cls, *terms: str) -> "Query":
        """Compile one query from individual ``action:arg`` strings."""
        return cls(QueryTerm.parse(t) for t in terms)

    def __call__(self, bookmarks: Iterable[Bookmark]) -> list[Bookmark]:
        result = list(bookmarks)
        for stage in self._stages:
            result = stage(result)
        logger.debug("Query %r matched %d bookmarks", str(self), len(result))
        return result

    def __str__(self) -> str:
        return " ".join(str(t) for t in self.terms)

    def __repr__(self) -> str:
        return f"Query({str(self)!r})"


def run_query(text: str, bookmarks: Iterable[Bookmark]) -> list[Bookmark]:
    """Parse, compile and run a query string in one step."""
    return Query.parse(text)(bookmarks)
