import pytest

from bindery import (
    TaggedUnion, tagged_union, index_of, overload, visit, bind, member, alias,
    StaticResolutionError, BadVariantAccess, VARIANT_NPOS, _1, _2,
)


class Circle:
    def __init__(self, r=1.0):
        self.r = r

    def area(self):
        return 3 * self.r * self.r


class Square:
    def __init__(self, side=1.0):
        self.side = side

    def area(self):
        return self.side * self.side


class Exploding:
    def __init__(self):
        raise RuntimeError("boom")


class Shape(TaggedUnion, alternatives=(Circle, Square)):
    pass


class Number(TaggedUnion, alternatives=(int, float, str)):
    pass


class Fragile(TaggedUnion, alternatives=(int, Exploding)):
    pass


def on_int(x: int) -> str:
    return "int"


def on_float(x: float) -> str:
    return "float"


def on_str(x: str) -> str:
    return "str"


def on_int_returns_int(x: int) -> int:
    return x


class Base:
    pass


class Mixin:
    pass


class Sub(Base, Mixin):
    pass


def on_base(x: Base) -> int:
    return 1


def on_sub(x: Sub) -> str:
    return "sub"


def on_mixin(x: Mixin) -> int:
    return 2


def on_plain_int(x: int) -> int:
    return 3


def pair_ii(a: int, b: int) -> str:
    return "ii"


def pair_is(a: int, b: str) -> str:
    return "is"


def pair_si(a: str, b: int) -> str:
    return "si"


def pair_ss(a: str, b: str) -> str:
    return "ss"


class Recorder:
    def __init__(self):
        self.calls = []

    def handle(self, value):
        self.calls.append(value)
        return value


# --- index_of Tests ---

def test_index_of_finds_unique_type():
    assert index_of(float, int, float, str) == 1


def test_index_of_missing_or_duplicate():
    with pytest.raises(StaticResolutionError):
        index_of(bytes, int, str)
    with pytest.raises(StaticResolutionError):
        index_of(int, int, str, int)


# --- TaggedUnion Tests ---

def test_union_defaults_to_first_alternative():
    s = Shape()
    assert s.index == 0
    assert isinstance(s.value, Circle)


def test_union_selects_alternative_by_type():
    n = Number(2.5)
    assert n.index == 1
    assert n.holds(float)
    assert not n.holds(int)


def test_union_exact_type_beats_subclass():
    # bool is an int subclass but only int is listed.
    n = Number(True)
    assert n.index == 0


def test_union_explicit_index():
    n = Number(index=2)
    assert n.value == ""
    with pytest.raises(StaticResolutionError):
        Number(3, index=2)
    with pytest.raises(StaticResolutionError):
        Number(index=5)


def test_union_rejects_foreign_value():
    with pytest.raises(StaticResolutionError):
        Number([1])


def test_union_get_and_get_if():
    n = Number("x")
    assert n.get(str) == "x"
    assert n.get(2) == "x"
    assert n.get_if(int) is None
    with pytest.raises(BadVariantAccess):
        n.get(int)


def test_union_assign_and_emplace():
    n = Number(1)
    n.assign("y")
    assert n.index == 2
    n.emplace(float, "2.5")
    assert n.index == 1 and n.value == 2.5


def test_union_equality():
    assert Number(1) == Number(1)
    assert Number(1) != Number(1.0)
    assert Number(1) != Number("1")


def test_union_requires_alternatives():
    with pytest.raises(StaticResolutionError):
        class Empty(TaggedUnion, alternatives=()):
            pass
    with pytest.raises(StaticResolutionError):
        class NotTypes(TaggedUnion, alternatives=(1, 2)):
            pass


def test_tagged_union_factory():
    IntOrStr = tagged_union(int, str)
    assert issubclass(IntOrStr, TaggedUnion)
    assert IntOrStr.alternatives == (int, str)
    assert IntOrStr("a").index == 1


def test_failed_emplace_leaves_union_valueless():
    f = Fragile(3)
    with pytest.raises(RuntimeError):
        f.emplace(Exploding)
    assert f.valueless
    assert f.index == VARIANT_NPOS
    with pytest.raises(BadVariantAccess):
        _ = f.value
    assert repr(f) == "Fragile<valueless>"


def test_valueless_union_recovers_on_emplace():
    f = Fragile(3)
    with pytest.raises(RuntimeError):
        f.emplace(Exploding)
    f.emplace(int, 9)
    assert f.get(int) == 9


# --- visit Tests ---

def test_visit_single_union_calls_active_arm_only():
    calls = []

    def on_i(x: int) -> str:
        calls.append("int")
        return "int"

    def on_f(x: float) -> str:
        calls.append("float")
        return "float"

    def on_s(x: str) -> str:
        calls.append("str")
        return "str"

    v = overload(on_i, on_f, on_s)
    assert visit(v, Number(1.5)) == "float"
    assert calls == ["float"]


def test_visit_cross_product():
    v = overload(pair_ii, pair_is, pair_si, pair_ss)
    IntOrStr = tagged_union(int, str)
    assert visit(v, IntOrStr(1), IntOrStr(2)) == "ii"
    assert visit(v, IntOrStr(1), IntOrStr("b")) == "is"
    assert visit(v, IntOrStr("a"), IntOrStr(2)) == "si"
    assert visit(v, IntOrStr("a"), IntOrStr("b")) == "ss"


def test_visit_with_plain_function():
    assert visit(lambda s: s.area(), Shape(Square(3))) == 9


def test_visit_with_generic_visitor_on_two_unions():
    seen = visit(lambda a, b: (type(a).__name__, type(b).__name__), Shape(), Number("x"))
    assert seen == ("Circle", "str")


def test_visit_with_deferred_call():
    d = bind(lambda tag, v: f"{tag}:{v}", "n", _1)
    assert visit(d, Number(4)) == "n:4"


def test_visit_with_member_reference():
    rec = Recorder()
    handler = bind(member(Recorder, "handle"), alias(rec), _1)
    visit(handler, Number("z"))
    assert rec.calls == ["z"]


def test_visit_valueless_operand_does_not_call_visitor():
    calls = []

    def visitor(a, b):
        calls.append((a, b))

    f = Fragile(1)
    with pytest.raises(RuntimeError):
        f.emplace(Exploding)
    with pytest.raises(BadVariantAccess) as exc_info:
        visit(visitor, Number(1), f)
    assert "operand 2" in str(exc_info.value)
    assert calls == []


def test_visit_rejects_non_union_operand():
    with pytest.raises(StaticResolutionError):
        visit(lambda x: x, 5)


def test_visit_rejects_wrong_visitor_arity():
    with pytest.raises(StaticResolutionError):
        visit(lambda a, b: a, Number(1))


def test_visit_overload_must_cover_every_alternative():
    v = overload(on_int, on_str)
    with pytest.raises(StaticResolutionError):
        visit(v, Number(1))


def test_visit_overload_returns_must_agree():
    v = overload(on_int_returns_int, on_float, on_str)
    with pytest.raises(StaticResolutionError):
        visit(v, Number("x"))


def test_visit_with_zero_unions():
    assert visit(lambda: "none") == "none"


def test_visit_overload_dispatches_on_declared_alternative():
    # Sub is stored under the Base alternative; on_sub is never selected.
    BaseOrInt = tagged_union(Base, int)
    v = overload(on_base, on_sub, on_plain_int)
    assert visit(v, BaseOrInt(Sub())) == 1
    assert visit(v, BaseOrInt(Base())) == 1
    assert visit(v, BaseOrInt(5)) == 3


def test_visit_overload_subclass_value_is_not_ambiguous():
    BaseOrInt = tagged_union(Base, int)
    v = overload(on_base, on_mixin, on_plain_int)
    assert visit(v, BaseOrInt(Base())) == 1
    assert visit(v, BaseOrInt(Sub())) == 1


def test_visit_rejects_deferred_call_reading_too_many_arguments():
    calls = []

    def add(a, b):
        calls.append((a, b))
        return a + b

    with pytest.raises(StaticResolutionError):
        visit(bind(add, _1, _2), Number(1))
    assert calls == []
    assert visit(bind(add, _1, _2), Number(1), Number(2)) == 3


# --- Overload Tests ---

def test_overload_prefers_exact_over_subclass():
    def on_any_int(x: int) -> str:
        return "int"

    def on_bool(x: bool) -> str:
        return "bool"

    v = overload(on_any_int, on_bool)
    assert v(True) == "bool"
    assert v(3) == "int"


def test_overload_prefers_fixed_arity_over_variadic():
    def fixed(a, b):
        return "fixed"

    def variadic(*args):
        return "variadic"

    v = overload(variadic, fixed)
    assert v(1, 2) == "fixed"
    assert v(1, 2, 3) == "variadic"


def test_overload_ambiguity_is_rejected():
    def first(x):
        return 1

    def second(y):
        return 2

    v = overload(first, second)
    with pytest.raises(StaticResolutionError) as exc_info:
        v(0)
    assert "tied" in str(exc_info.value)


def test_overload_union_annotation():
    def numeric(x: int | float) -> str:
        return "num"

    def text(x: str) -> str:
        return "text"

    v = overload(numeric, text)
    assert v(1.0) == "num"
    assert v("s") == "text"


def test_overload_needs_functions():
    with pytest.raises(StaticResolutionError):
        overload()
