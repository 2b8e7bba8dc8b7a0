"""
Partial application: bind() captures a callable and a fixed list of argument
slots into a DeferredCall, which is itself callable and may be nested inside
other DeferredCalls.
"""
import copy
import inspect
from typing import Any, List, Sequence, Tuple

from bindery.bindery_config import dbg
from bindery.bindery_datatypes import (
    CallShape, Placeholder, StaticResolutionError,
    is_alias,
)
from bindery.bindery_invoke import (
    UNKNOWN, classify, check_arity, check_member_arity, check_result_annotation,
    convert_result, call_with_shape, invoke, resolve_receiver,
)

# =================================================================
# Slots
# =================================================================

class Slot:
    """One bound argument position of a DeferredCall."""
    __slots__ = ("value",)

    def __init__(self, value: Any):
        self.value = value

    def __eq__(self, other):
        return type(self) is type(other) and self.value == other.value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.value!r})"


class LiteralSlot(Slot):
    """A value captured by copy when the DeferredCall was built."""


class AliasSlot(Slot):
    """A shared reference; reads the current referent at every application."""


class PlaceholderSlot(Slot):
    """Forwards call-site argument number `value.position`."""


class NestedSlot(Slot):
    """A DeferredCall applied to the whole call-site argument list."""


def _capture_literal(value: Any) -> Any:
    try:
        return copy.copy(value)
    except (TypeError, copy.Error) as e:
        raise StaticResolutionError(
            f"Cannot copy bound argument of type {type(value).__name__}",
            detail=f"{e}. Wrap the value with alias() to bind it by reference.",
        ) from None


def make_slot(arg: Any) -> Slot:
    """Classifies one bind() argument into its slot kind."""
    if is_alias(arg):
        return AliasSlot(arg)
    if isinstance(arg, DeferredCall):
        return NestedSlot(arg)
    if isinstance(arg, Placeholder):
        return PlaceholderSlot(arg)
    return LiteralSlot(_capture_literal(arg))


def slot_arity(slot: Slot) -> int:
    """Highest call-site position this slot reads (0 when it reads none)."""
    match slot:
        case PlaceholderSlot():
            return slot.value.position
        case NestedSlot():
            return slot.value.arity
        case _:
            return 0


class ArgumentClassifier:
    """Resolves bound slots against one call-site argument list."""
    def __init__(self, call_args: Sequence[Any]):
        self.call_args = tuple(call_args)

    def resolve(self, slot: Slot) -> Any:
        match slot:
            case AliasSlot():
                return slot.value.get()
            case NestedSlot():
                # The nested call sees every call-site argument, not a remainder.
                return invoke(slot.value, *self.call_args)
            case PlaceholderSlot():
                return self.call_args[slot.value.position - 1]
            case LiteralSlot():
                return slot.value
            case _:
                raise StaticResolutionError(f"Unknown slot kind {type(slot).__name__}")

    def resolve_all(self, slots: Sequence[Slot]) -> List[Any]:
        return [self.resolve(s) for s in slots]


# =================================================================
# DeferredCall
# =================================================================

class DeferredCall:
    """The result of bind(): a target callable plus an immutable slot tuple.

    Applying it resolves every slot in order against the call-site
    arguments, then invokes the target with the resolved values. The slot
    tuple is fixed at construction. Literal and nested slots are owned by
    this object; alias slots share their referent with the caller.
    """
    __slots__ = ("target", "slots", "shape", "arity", "result_type")

    def __init__(self, target: Any, slots: Tuple[Slot, ...], result_type: Any = UNKNOWN):
        self.target = target
        self.slots = slots
        self.shape = classify(target)
        self.arity = max((slot_arity(s) for s in slots), default=0)
        self.result_type = result_type
        self._validate()

    def _validate(self):
        """Checks the slot list against the target once, before any application."""
        if self.shape is CallShape.PLAIN:
            # Placeholders and nested calls stand in for one argument each.
            check_arity(self.target, self.slots)
            return
        check_member_arity(self.target, self.slots)
        # Only a literal receiver is known now; aliases may be rebound later.
        receiver = self.slots[0]
        if isinstance(receiver, LiteralSlot):
            resolve_receiver(self.target, receiver.value)

    @property
    def __signature__(self) -> inspect.Signature:
        """`arity` required positional arguments; extra call-site arguments are ignored."""
        params = [inspect.Parameter(f"arg{i}", inspect.Parameter.POSITIONAL_ONLY)
                  for i in range(1, self.arity + 1)]
        params.append(inspect.Parameter("rest", inspect.Parameter.VAR_POSITIONAL))
        return inspect.Signature(params)

    def __call__(self, *args):
        if len(args) < self.arity:
            raise StaticResolutionError(
                f"Deferred call reads call-site argument {self.arity} but got {len(args)}",
                target=self,
            )
        dbg("apply", type(self.target).__name__, "slots", len(self.slots), "argc", len(args))
        values = ArgumentClassifier(args).resolve_all(self.slots)
        result = call_with_shape(self.shape, self.target, values)
        if self.result_type is UNKNOWN:
            return result
        return convert_result(result, self.result_type, self)

    def __repr__(self) -> str:
        from bindery.bindery_printer import Printer
        return Printer().pformat(self)


def _build(target: Any, bound: Sequence[Any], result_type: Any) -> DeferredCall:
    slots = tuple(make_slot(arg) for arg in bound)
    if result_type is not UNKNOWN:
        check_result_annotation(target, result_type)
    call = DeferredCall(target, slots, result_type)
    dbg("bind", call.shape.value, type(target).__name__, "slots", [type(s).__name__ for s in slots])
    return call


def bind(target: Any, *bound) -> DeferredCall:
    """Captures `target` and `bound` into a reusable DeferredCall.

    Each bound argument becomes one slot: alias() values are read live,
    placeholders forward call-site arguments, DeferredCalls are applied to
    the call-site arguments, anything else is copied once now.
    """
    return _build(target, bound, UNKNOWN)


def bind_as(result_type: Any, target: Any, *bound) -> DeferredCall:
    """bind() with a declared result type; None discards the result."""
    return _build(target, bound, result_type)
