"""
Copy/move control for classes, and the trap optional built on it.
"""
import copy
from typing import Any, List

from bindery.bindery_datatypes import MisusedTrapValue

DEFAULT = "default"
DELETE = "delete"
USER = "user"

_POLICIES = (DEFAULT, DELETE, USER)

# Element types whose values can be duplicated without running user code.
TRIVIAL_TYPES = (int, float, complex, bool, str, bytes, type(None))


def is_trivial_type(tp: type) -> bool:
    return isinstance(tp, type) and issubclass(tp, TRIVIAL_TYPES)


def _slot_names(cls: type) -> List[str]:
    names = []
    for klass in cls.__mro__:
        slots = klass.__dict__.get("__slots__", ())
        if isinstance(slots, str):
            slots = (slots,)
        for name in slots:
            if name in ("__dict__", "__weakref__"):
                continue
            if name.startswith("__") and not name.endswith("__"):
                name = f"_{klass.__name__.lstrip('_')}{name}"
            names.append(name)
    return names


class ControlledMembers:
    """Mixin gating copy.copy / copy.deepcopy / move() of subclasses.

    ``copy_policy`` and ``move_policy`` are "default" (ordinary behaviour),
    "delete" (TypeError), or "user" (call ``_user_copy`` / ``_user_move``).
    ``_copy_policy()`` / ``_move_policy()`` may be overridden to decide per
    instance.
    """
    copy_policy = DEFAULT
    move_policy = DEFAULT

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        for attr in ("copy_policy", "move_policy"):
            if getattr(cls, attr) not in _POLICIES:
                raise ValueError(f"{cls.__name__}.{attr} must be one of {', '.join(_POLICIES)}")

    def _copy_policy(self) -> str:
        return type(self).copy_policy

    def _move_policy(self) -> str:
        return type(self).move_policy

    def _state(self):
        """(name, value) pairs held in __dict__ and in any __slots__ of the class."""
        items = list(self.__dict__.items())
        for name in _slot_names(type(self)):
            if hasattr(self, name):
                items.append((name, getattr(self, name)))
        return items

    def _default_copy(self):
        clone = object.__new__(type(self))
        for k, v in self._state():
            object.__setattr__(clone, k, v)
        return clone

    def __copy__(self):
        policy = self._copy_policy()
        if policy == DELETE:
            raise TypeError(f"{type(self).__name__} is not copyable")
        if policy == USER:
            return self._user_copy()
        return self._default_copy()

    def __deepcopy__(self, memo):
        policy = self._copy_policy()
        if policy == DELETE:
            raise TypeError(f"{type(self).__name__} is not copyable")
        if policy == USER:
            return self._user_copy()
        clone = object.__new__(type(self))
        memo[id(self)] = clone
        for k, v in self._state():
            object.__setattr__(clone, k, copy.deepcopy(v, memo))
        return clone

    def move(self):
        """Transfers this object's state into a new instance and empties this one."""
        policy = self._move_policy()
        if policy == DELETE:
            raise TypeError(f"{type(self).__name__} is not movable")
        if policy == USER:
            return self._user_move()
        moved = self._default_copy()
        self._moved_from()
        return moved

    def _moved_from(self):
        """Leaves a moved-from object in a valid empty state."""

    def _user_copy(self):
        raise NotImplementedError

    def _user_move(self):
        raise NotImplementedError


class TrapOptional(ControlledMembers):
    """Storage for at most one value of `element_type`, with deliberate traps.

    Reading an empty trap raises MisusedTrapValue. Copying is only allowed
    for trivially copyable element types; moving a non-trivial element
    raises MisusedTrapValue instead of degrading to a copy.
    """
    copy_policy = USER
    move_policy = USER

    def __init__(self, element_type: type, *args, **kwargs):
        if not isinstance(element_type, type):
            raise TypeError(f"element_type must be a class, not {type(element_type).__name__}")
        if issubclass(element_type, TrapOptional):
            raise TypeError("TrapOptional cannot hold another TrapOptional")
        self.element_type = element_type
        self._engaged = False
        self._value = None
        if args or kwargs:
            self.emplace(*args, **kwargs)

    @property
    def has_value(self) -> bool:
        return self._engaged

    def emplace(self, *args, **kwargs) -> Any:
        if len(args) == 1 and not kwargs and type(args[0]) is self.element_type:
            value = args[0]
        else:
            value = self.element_type(*args, **kwargs)
        self._value = value
        self._engaged = True
        return value

    def value(self) -> Any:
        if not self._engaged:
            raise MisusedTrapValue(f"TrapOptional[{self.element_type.__name__}] read before initialization")
        return self._value

    def reset(self):
        self._value = None
        self._engaged = False

    def _copy_policy(self) -> str:
        return USER if is_trivial_type(self.element_type) else DELETE

    def _user_copy(self):
        clone = TrapOptional(self.element_type)
        clone._engaged = self._engaged
        clone._value = self._value
        return clone

    def _user_move(self):
        if not is_trivial_type(self.element_type):
            raise MisusedTrapValue(
                f"TrapOptional[{self.element_type.__name__}] moved; its element is not trivially movable"
            )
        moved = self._user_copy()
        self.reset()
        return moved

    def __repr__(self) -> str:
        inner = repr(self._value) if self._engaged else "<empty>"
        return f"TrapOptional[{self.element_type.__name__}]({inner})"


def make_trap(value: Any) -> TrapOptional:
    return TrapOptional(type(value), value)
