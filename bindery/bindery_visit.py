"""
Tagged unions and multi-way visitation.

visit(visitor, u1, ..., uN) scans each union's active index in order,
collects the active values, and invokes the visitor with them. Before the
scan starts the whole call is validated: every operand must be a
TaggedUnion, the visitor must accept N arguments, and an overload visitor
must cover every alternative combination with a uniform return type.
"""
import inspect
import itertools
import types
import typing
from typing import Any, List, Optional, Sequence, Tuple

from bindery.bindery_config import dbg
from bindery.bindery_datatypes import BadVariantAccess, CallShape, StaticResolutionError
from bindery.bindery_invoke import (
    UNKNOWN, classify, check_arity, check_member_arity, invoke, return_annotation,
)

VARIANT_NPOS = -1

_MISSING = object()


def index_of(tp: type, *types_: type) -> int:
    """0-based position of `tp` in `types_`; `tp` must occur exactly once."""
    hits = [i for i, t in enumerate(types_) if t is tp]
    if len(hits) != 1:
        name = getattr(tp, "__name__", repr(tp))
        problem = "does not occur" if not hits else f"occurs {len(hits)} times"
        raise StaticResolutionError(f"Type {name} {problem} in the alternative list")
    return hits[0]


# =================================================================
# TaggedUnion
# =================================================================

class TaggedUnion:
    """Holds exactly one value drawn from a closed set of alternative types.

    Subclasses fix the set with ``class Shape(TaggedUnion, alternatives=(Circle, Square))``
    or through tagged_union(). A union becomes valueless only when emplace()
    fails part way; visit() on it raises BadVariantAccess.
    """
    alternatives: Tuple[type, ...] = ()
    __slots__ = ("_index", "_value")

    def __init_subclass__(cls, alternatives=None, **kwargs):
        super().__init_subclass__(**kwargs)
        alts = tuple(cls.alternatives if alternatives is None else alternatives)
        if not alts:
            raise StaticResolutionError(f"{cls.__name__} declares no alternatives")
        for alt in alts:
            if not isinstance(alt, type):
                raise StaticResolutionError(f"{cls.__name__}: alternative {alt!r} is not a class")
        cls.alternatives = alts

    def __init__(self, value: Any = _MISSING, *, index: Optional[int] = None):
        if not type(self).alternatives:
            raise StaticResolutionError("TaggedUnion must be subclassed with alternatives")
        if index is not None:
            index = self._check_index(index)
            if value is _MISSING:
                value = type(self).alternatives[index]()
            elif not isinstance(value, type(self).alternatives[index]):
                raise StaticResolutionError(
                    f"{type(value).__name__} is not alternative {index} "
                    f"({type(self).alternatives[index].__name__}) of {type(self).__name__}"
                )
        elif value is _MISSING:
            index = 0
            value = type(self).alternatives[0]()
        else:
            index = self.select(value)
        self._index = index
        self._value = value

    @classmethod
    def _check_index(cls, index: int) -> int:
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(cls.alternatives):
            raise StaticResolutionError(f"{cls.__name__} has no alternative {index!r}")
        return index

    @classmethod
    def _key_index(cls, key: Any) -> int:
        if isinstance(key, type):
            return index_of(key, *cls.alternatives)
        return cls._check_index(key)

    @classmethod
    def select(cls, value: Any) -> int:
        """Chooses the alternative for `value`: exact type first, then a unique isinstance match."""
        exact = [i for i, alt in enumerate(cls.alternatives) if type(value) is alt]
        if len(exact) == 1:
            return exact[0]
        if len(exact) > 1:
            raise StaticResolutionError(
                f"{type(value).__name__} appears {len(exact)} times in {cls.__name__}; pass index="
            )
        loose = [i for i, alt in enumerate(cls.alternatives) if isinstance(value, alt)]
        if len(loose) == 1:
            return loose[0]
        if not loose:
            raise StaticResolutionError(f"{type(value).__name__} is not an alternative of {cls.__name__}")
        names = ", ".join(cls.alternatives[i].__name__ for i in loose)
        raise StaticResolutionError(f"{type(value).__name__} is ambiguous in {cls.__name__} ({names})")

    @property
    def index(self) -> int:
        return self._index

    @property
    def valueless(self) -> bool:
        return self._index == VARIANT_NPOS

    @property
    def value(self) -> Any:
        if self.valueless:
            raise BadVariantAccess(f"{type(self).__name__} is valueless", target=self)
        return self._value

    def holds(self, key: Any) -> bool:
        return self._index == self._key_index(key)

    def get(self, key: Any) -> Any:
        i = self._key_index(key)
        if self._index != i:
            raise BadVariantAccess(
                f"{type(self).__name__} does not hold alternative {i} "
                f"({type(self).alternatives[i].__name__})",
                target=self,
            )
        return self._value

    def get_if(self, key: Any) -> Any:
        i = self._key_index(key)
        return self._value if self._index == i else None

    def assign(self, value: Any):
        index = self.select(value)
        self._index = index
        self._value = value

    def emplace(self, key: Any, *args, **kwargs) -> Any:
        """Replaces the held value with a newly constructed alternative.

        The old value is dropped first. If the constructor raises, the union
        stays valueless and the exception propagates.
        """
        i = self._key_index(key)
        self._index = VARIANT_NPOS
        self._value = None
        value = type(self).alternatives[i](*args, **kwargs)
        self._index = i
        self._value = value
        return value

    def __eq__(self, other):
        if type(self) is not type(other):
            return NotImplemented
        return self._index == other._index and self._value == other._value

    __hash__ = None

    def __repr__(self) -> str:
        from bindery.bindery_printer import Printer
        return Printer().pformat(self)


def tagged_union(*alternatives: type, name: Optional[str] = None) -> type:
    """Creates a TaggedUnion subclass over `alternatives`."""
    if name is None:
        name = "Union_" + "_".join(getattr(a, "__name__", "T") for a in alternatives)
    return types.new_class(name, (TaggedUnion,), {"alternatives": alternatives})


# =================================================================
# Overload visitors
# =================================================================

class _Candidate:
    """Positional parameter layout of one overload function."""
    __slots__ = ("fn", "required", "maximum", "annotations")

    def __init__(self, fn):
        self.fn = fn
        try:
            sig = inspect.signature(fn)
        except (TypeError, ValueError):
            raise StaticResolutionError("Overload member has no inspectable signature", target=fn) from None
        try:
            hints = typing.get_type_hints(fn)
        except (NameError, TypeError, AttributeError):
            hints = {}
        params = [p for p in sig.parameters.values()
                  if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)]
        variadic = any(p.kind is p.VAR_POSITIONAL for p in sig.parameters.values())
        self.required = sum(1 for p in params if p.default is p.empty)
        self.maximum = None if variadic else len(params)
        self.annotations = [hints.get(p.name, p.annotation) for p in params]

    def accepts(self, n: int) -> bool:
        return n >= self.required and (self.maximum is None or n <= self.maximum)

    def score(self, arg_types: Sequence[type]) -> float:
        """Annotation coverage: 2 per exact match, 1 per subclass match, -1 if any mismatch."""
        total = 0
        for ann, tp in zip(self.annotations, arg_types):
            s = _match(ann, tp)
            if s < 0:
                return -1
            total += s
        return total


def _match(ann: Any, tp: type) -> int:
    if ann is inspect.Parameter.empty or ann is typing.Any or ann is object:
        return 0
    if isinstance(ann, type):
        if tp is ann:
            return 2
        return 1 if issubclass(tp, ann) else -1
    if isinstance(ann, types.UnionType) or typing.get_origin(ann) is typing.Union:
        best = max((_match(a, tp) for a in typing.get_args(ann)), default=-1)
        return best
    # Subscripted generics and other typing constructs are not checked.
    return 0


class Overload:
    """A visitor made of several functions, chosen by argument types."""
    def __init__(self, *fns):
        if not fns:
            raise StaticResolutionError("overload() needs at least one function")
        self.fns = fns
        self._candidates = [_Candidate(fn) for fn in fns]

    def resolve(self, *arg_types: type):
        n = len(arg_types)
        exact = [c for c in self._candidates if c.maximum is not None and c.accepts(n)]
        variadic = [c for c in self._candidates if c.maximum is None and c.accepts(n)]

        scored = []
        for tier in (exact, variadic):
            scored = [(c.score(arg_types), c) for c in tier]
            scored = [(s, c) for s, c in scored if s >= 0]
            if scored:
                break
        names = ", ".join(t.__name__ for t in arg_types)
        if not scored:
            raise StaticResolutionError(f"No overload accepts ({names})", target=self)
        best_score = max(s for s, _ in scored)
        best = [c for s, c in scored if s == best_score]
        if len(best) != 1:
            raise StaticResolutionError(
                f"Ambiguous overload for ({names})",
                target=self,
                detail="Candidates have tied scores.",
            )
        return best[0].fn

    def __call__(self, *args):
        fn = self.resolve(*(type(a) for a in args))
        return fn(*args)

    def __repr__(self) -> str:
        from bindery.bindery_printer import Printer
        return Printer().pformat(self)


def overload(*fns) -> Overload:
    return Overload(*fns)


# =================================================================
# visit
# =================================================================

def _validate(visitor: Any, unions: Sequence[Any]):
    for u in unions:
        if not isinstance(u, TaggedUnion):
            raise StaticResolutionError(f"visit() operand {type(u).__name__} is not a TaggedUnion", target=u)

    if isinstance(visitor, Overload):
        returns: List[Any] = []
        for combo in itertools.product(*(type(u).alternatives for u in unions)):
            ann = return_annotation(visitor.resolve(*combo))
            if ann is not UNKNOWN and ann not in returns:
                returns.append(ann)
        if len(returns) > 1:
            kinds = ", ".join(getattr(r, "__name__", repr(r)) for r in returns)
            raise StaticResolutionError(f"Visitor returns differ across alternatives: {kinds}", target=visitor)
        return

    shape = classify(visitor)
    if shape is CallShape.PLAIN:
        check_arity(visitor, unions)
    else:
        check_member_arity(visitor, unions)


def _scan(visitor: Any, unions: Sequence[TaggedUnion], i: int,
          resolved: Tuple[Any, ...], matched: Tuple[type, ...]) -> Any:
    if i == len(unions):
        if isinstance(visitor, Overload):
            # Resolved on the declared alternatives, as in _validate.
            return invoke(visitor.resolve(*matched), *resolved)
        return invoke(visitor, *resolved)
    union = unions[i]
    active = union.index
    for j, alt in enumerate(union.alternatives):
        if active == j:
            return _scan(visitor, unions, i + 1, resolved + (union._value,), matched + (alt,))
    raise BadVariantAccess(f"visit() operand {i + 1} is valueless", target=union)


def visit(visitor: Any, *unions: TaggedUnion) -> Any:
    """Invokes `visitor` with the active value of every union, in order."""
    _validate(visitor, unions)
    dbg("visit", type(visitor).__name__, "indices", [u.index for u in unions])
    return _scan(visitor, unions, 0, (), ())
