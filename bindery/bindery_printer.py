"""
A pretty-printer for bindery values.

Values are rendered in the notation used to build them, e.g.
``bind(add, _1, alias(3), bind(neg, _2))``.
"""
import weakref

from bindery.bindery_datatypes import Ref, Placeholder, Pointer, MemberRef, AliasWrapper
from bindery.bindery_bind import DeferredCall, LiteralSlot, AliasSlot, PlaceholderSlot, NestedSlot
from bindery.bindery_invoke import UNKNOWN
from bindery.bindery_visit import TaggedUnion, Overload


class Printer:
    """Formats bindery objects into readable construction expressions."""

    def __init__(self, max_width=None):
        self.max_width = max_width
        self._handlers = self._create_handlers()

    def pformat(self, obj):
        """Public entry point to format an object."""
        text = self._get_handler(obj)(obj)
        if self.max_width is not None and len(text) > self.max_width:
            return text[:max(self.max_width - 3, 0)] + "..."
        return text

    def _get_handler(self, obj):
        """Dispatcher to find the correct formatting method."""
        obj_type = type(obj)
        if obj_type in self._handlers:
            return self._handlers[obj_type]
        if isinstance(obj, TaggedUnion):
            return self._pformat_union
        if isinstance(obj, AliasWrapper):
            return self._pformat_alias
        if isinstance(obj, weakref.ReferenceType):
            return self._pformat_weakref
        if isinstance(obj, type):
            return self._pformat_name
        if callable(obj) and hasattr(obj, "__qualname__"):
            return self._pformat_name
        # Default to Python's repr for unknown types
        return repr

    def _create_handlers(self):
        return {
            Ref: self._pformat_alias,
            Placeholder: self._pformat_placeholder,
            Pointer: self._pformat_pointer,
            MemberRef: self._pformat_member,
            DeferredCall: self._pformat_deferred,
            LiteralSlot: self._pformat_slot_value,
            AliasSlot: self._pformat_slot_value,
            PlaceholderSlot: self._pformat_slot_value,
            NestedSlot: self._pformat_slot_value,
            Overload: self._pformat_overload,
        }

    def _pformat_name(self, obj):
        return getattr(obj, "__qualname__", None) or getattr(obj, "__name__", None) or repr(obj)

    def _pformat_placeholder(self, obj):
        return f"_{obj.position}"

    def _pformat_alias(self, obj):
        return f"alias({self.pformat(obj.get())})"

    def _pformat_pointer(self, obj):
        return f"pointer({self.pformat(obj.deref())})"

    def _pformat_weakref(self, obj):
        target = obj()
        inner = "dead" if target is None else self.pformat(target)
        return f"weakref({inner})"

    def _pformat_member(self, obj):
        return f"member({obj.owner.__qualname__}, {obj.name!r}, kind={obj.shape.value!r})"

    def _pformat_slot_value(self, obj):
        return self.pformat(obj.value)

    def _pformat_deferred(self, obj):
        parts = [self.pformat(obj.target)] + [self.pformat(s) for s in obj.slots]
        if obj.result_type is UNKNOWN:
            return f"bind({', '.join(parts)})"
        rt = "None" if obj.result_type is None else self._pformat_name(obj.result_type)
        return f"bind_as({rt}, {', '.join(parts)})"

    def _pformat_union(self, obj):
        name = type(obj).__qualname__
        if obj.valueless:
            return f"{name}<valueless>"
        return f"{name}<{obj.index}: {self.pformat(obj._value)}>"

    def _pformat_overload(self, obj):
        return f"overload({', '.join(self.pformat(fn) for fn in obj.fns)})"
