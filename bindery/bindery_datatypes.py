"""
Defines the core data types that bindery compositions are built from.

This module provides the error hierarchy, the alias wrapper (Ref) and its
predicate, placeholder tokens, pointer-like handles, and bound member
references.
"""
import enum
import inspect
import weakref
import dataclasses
from abc import ABC, abstractmethod
from typing import Any, Optional

from bindery.bindery_config import get_settings

# =================================================================
# Errors
# =================================================================

class BinderyError(Exception):
    """Base class for every error raised by bindery itself."""
    def __init__(self, message: str, target: Any = None, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.target = target
        self.detail = detail

    def __str__(self) -> str:
        msg = self.message
        if self.target is not None:
            from bindery.bindery_printer import Printer  # local import to avoid cycle
            msg = f"{msg}\n{Printer(max_width=240).pformat(self.target)}"
        if self.detail:
            msg = f"{msg}\n{self.detail}"
        return msg


class StaticResolutionError(BinderyError, TypeError):
    """A composition has no valid resolution (arity, receiver kind, result type)."""


class BadVariantAccess(BinderyError, LookupError):
    """A tagged union was accessed through an alternative it does not hold."""


class MisusedTrapValue(BinderyError, RuntimeError):
    """A trap optional was used in a way it deliberately refuses."""


# =================================================================
# Alias wrapper
# =================================================================

class AliasWrapper(ABC):
    """Abstract base for values that stand for another value by shared reference.

    Handle types from other libraries can take part in alias detection with
    ``AliasWrapper.register(TheirHandle)``; they must provide ``get()``.
    """
    @abstractmethod
    def get(self) -> Any:
        raise NotImplementedError


def is_alias(obj: Any) -> bool:
    return isinstance(obj, AliasWrapper)


class Ref(AliasWrapper):
    """A shared, rebindable cell. Every holder of the same Ref sees `set`."""
    __slots__ = ("_target",)

    def __init__(self, target: Any):
        self._target = target

    def get(self) -> Any:
        return self._target

    def set(self, value: Any):
        self._target = value

    def __call__(self, *args):
        from bindery.bindery_invoke import invoke  # local import to avoid cycle
        return invoke(self._target, *args)

    def __repr__(self) -> str:
        from bindery.bindery_printer import Printer
        return Printer().pformat(self)


def alias(value: Any) -> AliasWrapper:
    """Returns `value` itself if it already is an alias, else a new Ref to it."""
    if is_alias(value):
        return value
    return Ref(value)


# =================================================================
# Placeholders
# =================================================================

class Placeholder:
    """A bound-slot token standing for call-site argument `position` (1-based)."""
    __slots__ = ("position",)

    def __init__(self, position: int):
        self.position = position

    def __eq__(self, other):
        if not isinstance(other, Placeholder):
            return NotImplemented
        return self.position == other.position

    def __hash__(self):
        return hash((Placeholder, self.position))

    def __repr__(self) -> str:
        return f"_{self.position}"


def placeholder(position: int) -> Placeholder:
    limit = get_settings().max_placeholder
    if isinstance(position, bool) or not isinstance(position, int):
        raise StaticResolutionError(f"Placeholder position must be an int, not {type(position).__name__}")
    if not 1 <= position <= limit:
        raise StaticResolutionError(f"Placeholder position {position} outside 1..{limit}")
    return Placeholder(position)


def is_placeholder(obj: Any) -> int:
    """Returns the placeholder position of `obj`, or 0 when it is not one."""
    if isinstance(obj, Placeholder):
        return obj.position
    return 0


_1 = Placeholder(1)
_2 = Placeholder(2)
_3 = Placeholder(3)
_4 = Placeholder(4)
_5 = Placeholder(5)
_6 = Placeholder(6)
_7 = Placeholder(7)
_8 = Placeholder(8)
_9 = Placeholder(9)


# =================================================================
# Indirect (pointer-like) handles
# =================================================================

class Pointer:
    """An explicit indirection to an object. Dereferenced once by member calls."""
    __slots__ = ("_pointee",)

    def __init__(self, pointee: Any):
        self._pointee = pointee

    def deref(self) -> Any:
        return self._pointee

    def __repr__(self) -> str:
        from bindery.bindery_printer import Printer
        return Printer().pformat(self)


def pointer(obj: Any) -> Pointer:
    return Pointer(obj)


def is_indirect(obj: Any) -> bool:
    return isinstance(obj, (Pointer, weakref.ReferenceType))


def dereference(ptr: Any) -> Any:
    """Follows a Pointer or weakref.ref exactly one level."""
    if isinstance(ptr, Pointer):
        return ptr.deref()
    if isinstance(ptr, weakref.ReferenceType):
        obj = ptr()
        if obj is None:
            raise ReferenceError("weakly-referenced receiver no longer exists")
        return obj
    raise StaticResolutionError("Object is not an indirect handle", target=ptr)


# =================================================================
# Callable shapes and member references
# =================================================================

class CallShape(enum.Enum):
    PLAIN = "plain"
    METHOD = "method"
    DATA = "data"


class MemberRef:
    """A reference to a method or data member declared by `owner`.

    The receiver is supplied at call time as the first argument; see
    bindery_invoke.resolve_receiver for the accepted receiver kinds.
    """
    __slots__ = ("owner", "name", "shape")

    def __init__(self, owner: type, name: str, shape: CallShape):
        self.owner = owner
        self.name = name
        self.shape = shape

    def __call__(self, *args):
        from bindery.bindery_invoke import invoke
        return invoke(self, *args)

    def __eq__(self, other):
        if not isinstance(other, MemberRef):
            return NotImplemented
        return (self.owner, self.name, self.shape) == (other.owner, other.name, other.shape)

    def __hash__(self):
        return hash((self.owner, self.name, self.shape))

    def __repr__(self) -> str:
        from bindery.bindery_printer import Printer
        return Printer().pformat(self)


_MISSING = object()


def _infer_member_shape(owner: type, name: str) -> Optional[CallShape]:
    attr = inspect.getattr_static(owner, name, _MISSING)
    if attr is not _MISSING:
        if isinstance(attr, (staticmethod, classmethod)) or inspect.isfunction(attr):
            return CallShape.METHOD
        if isinstance(attr, property) or inspect.ismemberdescriptor(attr) or inspect.isdatadescriptor(attr):
            return CallShape.DATA
        return CallShape.METHOD if callable(attr) else CallShape.DATA
    # Instance attributes only show up through declarations.
    if dataclasses.is_dataclass(owner) and name in {f.name for f in dataclasses.fields(owner)}:
        return CallShape.DATA
    for klass in owner.__mro__:
        if name in getattr(klass, "__annotations__", {}):
            return CallShape.DATA
    return None


def member(owner: type, name: str, kind: Optional[str] = None) -> MemberRef:
    """Builds a MemberRef, classifying it as a method or data member once."""
    if not isinstance(owner, type):
        raise StaticResolutionError(f"member() needs a class as owner, not {type(owner).__name__}", target=owner)
    if kind is None:
        shape = _infer_member_shape(owner, name)
        if shape is None:
            raise StaticResolutionError(
                f"{owner.__name__} declares no member {name!r}",
                detail="Pass kind='method' or kind='data' for attributes set only on instances.",
            )
    else:
        try:
            shape = CallShape(kind)
        except ValueError:
            raise StaticResolutionError(f"Unknown member kind {kind!r}; expected 'method' or 'data'") from None
        if shape is CallShape.PLAIN:
            raise StaticResolutionError("A member reference cannot have the plain shape")
    return MemberRef(owner, name, shape)
