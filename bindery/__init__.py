"""
bindery: uniform invocation, partial application with placeholders, and
multi-way visitation of tagged unions.
"""
from bindery.bindery_datatypes import (
    BinderyError, StaticResolutionError, BadVariantAccess, MisusedTrapValue,
    AliasWrapper, Ref, alias, is_alias,
    Placeholder, placeholder, is_placeholder, _1, _2, _3, _4, _5, _6, _7, _8, _9,
    Pointer, pointer, CallShape, MemberRef, member,
)
from bindery.bindery_invoke import invoke, invoke_as, classify
from bindery.bindery_bind import DeferredCall, bind, bind_as
from bindery.bindery_visit import (
    TaggedUnion, tagged_union, index_of, Overload, overload, visit, VARIANT_NPOS,
)
from bindery.bindery_views import SplitView, split_view
from bindery.bindery_trap import ControlledMembers, TrapOptional, make_trap
from bindery.bindery_printer import Printer

__all__ = [
    "BinderyError", "StaticResolutionError", "BadVariantAccess", "MisusedTrapValue",
    "AliasWrapper", "Ref", "alias", "is_alias",
    "Placeholder", "placeholder", "is_placeholder",
    "_1", "_2", "_3", "_4", "_5", "_6", "_7", "_8", "_9",
    "Pointer", "pointer", "CallShape", "MemberRef", "member",
    "invoke", "invoke_as", "classify",
    "DeferredCall", "bind", "bind_as",
    "TaggedUnion", "tagged_union", "index_of", "Overload", "overload", "visit", "VARIANT_NPOS",
    "SplitView", "split_view",
    "ControlledMembers", "TrapOptional", "make_trap",
    "Printer",
]
