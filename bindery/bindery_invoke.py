"""
The uniform invocation operator.

invoke() accepts three callable shapes: a plain callable, a member reference
to a method, and a member reference to a data member. The shape is
classified once per call (or once per composition, for bind), then the
matching branch runs.
"""
import inspect
import numbers
import typing
from typing import Any, Optional, Sequence

from bindery.bindery_config import dbg, get_settings
from bindery.bindery_datatypes import (
    CallShape, MemberRef, StaticResolutionError,
    is_alias, is_indirect, dereference,
)

# Sentinel for "no return annotation we can reason about".
UNKNOWN = object()


def classify(target: Any) -> CallShape:
    if isinstance(target, MemberRef):
        return target.shape
    if callable(target):
        return CallShape.PLAIN
    raise StaticResolutionError("Object is not callable", target=target)


def signature_of(fn: Any) -> Optional[inspect.Signature]:
    """Returns the signature of `fn`, or None when checks are off or none exists."""
    if not get_settings().check_signatures:
        return None
    try:
        return inspect.signature(fn)
    except (TypeError, ValueError):
        # Some builtins and C extensions publish no signature.
        return None


def check_arity(fn: Any, args: Sequence[Any], target: Any = None):
    sig = signature_of(fn)
    if sig is None:
        return
    try:
        sig.bind(*args)
    except TypeError as e:
        raise StaticResolutionError(
            f"Cannot call with {len(args)} argument(s): {e}",
            target=target if target is not None else fn,
        ) from None


def resolve_receiver(ref: MemberRef, receiver: Any) -> Any:
    """Picks exactly one receiver kind: direct, alias-unwrapped, or dereferenced."""
    if isinstance(receiver, ref.owner):
        return receiver
    if is_alias(receiver):
        resolved = receiver.get()
        kind = "alias"
    elif is_indirect(receiver):
        resolved = dereference(receiver)
        kind = "indirect"
    else:
        raise StaticResolutionError(
            f"Receiver of type {type(receiver).__name__} is not a {ref.owner.__name__}, "
            f"an alias to one, or a pointer to one",
            target=ref,
        )
    if not isinstance(resolved, ref.owner):
        raise StaticResolutionError(
            f"{kind} receiver refers to {type(resolved).__name__}, expected {ref.owner.__name__}",
            target=ref,
        )
    return resolved


def _member_function(ref: MemberRef) -> Any:
    """The function a method reference will end up calling, for signature checks."""
    return getattr(ref.owner, ref.name, None)


def check_member_arity(ref: MemberRef, args: Sequence[Any]):
    """Validates argument count for a member reference, receiver included."""
    if ref.shape is CallShape.DATA:
        if len(args) != 1:
            raise StaticResolutionError(
                f"Data member access takes exactly one receiver argument, got {len(args)}",
                target=ref,
            )
        return
    if not args:
        raise StaticResolutionError("Method call is missing its receiver argument", target=ref)
    fn = _member_function(ref)
    if fn is None:
        return
    attr = inspect.getattr_static(ref.owner, ref.name, None)
    if isinstance(attr, (staticmethod, classmethod)):
        # Receiver selects the class or is ignored; only the rest binds.
        check_arity(fn, args[1:], target=ref)
    elif inspect.isfunction(attr) or inspect.ismethoddescriptor(attr):
        check_arity(attr, args, target=ref)


def call_with_shape(shape: CallShape, target: Any, args: Sequence[Any]) -> Any:
    match shape:
        case CallShape.PLAIN:
            check_arity(target, args)
            return target(*args)
        case CallShape.METHOD:
            check_member_arity(target, args)
            receiver = resolve_receiver(target, args[0])
            return getattr(receiver, target.name)(*args[1:])
        case CallShape.DATA:
            check_member_arity(target, args)
            receiver = resolve_receiver(target, args[0])
            return getattr(receiver, target.name)


def invoke(target: Any, *args) -> Any:
    """Calls `target` with `args` under the uniform calling convention."""
    shape = classify(target)
    dbg("invoke", shape.value, type(target).__name__, "argc", len(args))
    return call_with_shape(shape, target, args)


# =================================================================
# Result-type contract
# =================================================================

def _is_discard(result_type: Any) -> bool:
    return result_type is None or result_type is type(None)


def _is_anything(result_type: Any) -> bool:
    return result_type is object or result_type is typing.Any


def _widens(src: type, dst: type) -> bool:
    if src is bool:
        return False
    if dst is float:
        return issubclass(src, numbers.Integral)
    if dst is complex:
        return issubclass(src, numbers.Real)
    return False


def return_annotation(target: Any) -> Any:
    """The declared return type of `target`, or UNKNOWN."""
    from bindery.bindery_bind import DeferredCall  # local import to avoid cycle
    if isinstance(target, DeferredCall):
        if target.result_type is not UNKNOWN:
            return target.result_type
        return return_annotation(target.target)
    if is_alias(target):
        return return_annotation(target.get())
    fn = target
    if isinstance(target, MemberRef):
        if target.shape is CallShape.DATA:
            return UNKNOWN
        fn = _member_function(target)
        if fn is None:
            return UNKNOWN
    try:
        hints = typing.get_type_hints(fn)
    except (NameError, TypeError, AttributeError):
        # Unresolvable forward references or objects without annotations.
        return UNKNOWN
    if "return" not in hints:
        return UNKNOWN
    return hints["return"]


def check_result_annotation(target: Any, result_type: Any):
    """Rejects a composition whose declared return can never satisfy `result_type`."""
    if _is_discard(result_type) or _is_anything(result_type):
        return
    declared = return_annotation(target)
    if declared is UNKNOWN or not isinstance(declared, type) or not isinstance(result_type, type):
        return
    if not (issubclass(declared, result_type) or _widens(declared, result_type)):
        raise StaticResolutionError(
            f"Declared result {declared.__name__} is not convertible to {result_type.__name__}",
            target=target,
        )


def convert_result(result: Any, result_type: Any, target: Any = None) -> Any:
    if _is_discard(result_type):
        return None
    if _is_anything(result_type) or not isinstance(result_type, type):
        return result
    if isinstance(result, result_type):
        return result
    if _widens(type(result), result_type):
        return result_type(result)
    raise StaticResolutionError(
        f"Result of type {type(result).__name__} is not convertible to {result_type.__name__}",
        target=target,
    )


def invoke_as(result_type: Any, target: Any, *args) -> Any:
    """invoke() whose result must convert to `result_type` (None discards it)."""
    check_result_annotation(target, result_type)
    return convert_result(invoke(target, *args), result_type, target)
