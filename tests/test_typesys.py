import pytest

from cfront.source import CompileError
from cfront.typesys import (
    Member,
    Node,
    NodeKind,
    Obj,
    TypeKind,
    add_type,
    array_of,
    copy_type,
    enum_type,
    func_type,
    is_compatible,
    is_flonum,
    is_integer,
    is_numeric,
    pointer_to,
    struct_type,
    ty_char,
    ty_double,
    ty_float,
    ty_int,
    ty_ldouble,
    ty_long,
    ty_short,
    ty_uint,
    ty_void,
    vla_of,
)


def typed(ty):
    return Node(NodeKind.NUM, ty=ty)


def fn(ret, *params, variadic=False):
    ty = func_type(ret)
    ty.params = list(params)
    ty.is_variadic = variadic
    return pointer_to(ty)


# Cases from builtin.c


def test_compatible_basic():
    assert is_compatible(ty_int, ty_int) is True
    assert is_compatible(ty_double, ty_double) is True
    assert is_compatible(ty_int, ty_long) is False
    assert is_compatible(ty_long, ty_float) is False


def test_compatible_pointers():
    assert is_compatible(pointer_to(ty_int), pointer_to(ty_int)) is True
    assert is_compatible(pointer_to(ty_short), pointer_to(ty_int)) is False
    assert is_compatible(pointer_to(pointer_to(ty_int)), pointer_to(ty_int)) is False


def test_compatible_signedness():
    assert is_compatible(ty_uint, ty_int) is False
    assert is_compatible(copy_type(ty_int), ty_int) is True


def test_distinct_structs_incompatible():
    assert is_compatible(struct_type(), struct_type()) is False


def test_typedef_struct_compatible_with_copy():
    t = struct_type()
    assert is_compatible(t, t) is True
    assert is_compatible(t, copy_type(t)) is True


def test_compatible_function_pointers():
    assert is_compatible(fn(ty_int), fn(ty_int)) is True
    assert is_compatible(fn(ty_void, ty_int), fn(ty_void, ty_int)) is True
    assert is_compatible(fn(ty_void, ty_int, ty_double), fn(ty_void, ty_int, ty_double)) is True
    assert is_compatible(fn(ty_int, ty_float, ty_double), fn(ty_int, ty_float, ty_double)) is True
    assert is_compatible(fn(ty_int, ty_float, ty_double), ty_int) is False
    assert is_compatible(fn(ty_int, ty_float, ty_double), fn(ty_int, ty_float)) is False
    assert is_compatible(
        fn(ty_int, ty_float, ty_double), fn(ty_int, ty_float, ty_double, ty_int)
    ) is False
    assert is_compatible(fn(ty_double, variadic=True), fn(ty_double, variadic=True)) is True
    assert is_compatible(fn(ty_double, variadic=True), fn(ty_double)) is False


# Cases from sizeof.c


@pytest.mark.parametrize(
    "ty,size",
    [
        (ty_char, 1),
        (ty_short, 2),
        (ty_int, 4),
        (ty_long, 8),
        (ty_float, 4),
        (ty_double, 8),
        (ty_ldouble, 16),
    ],
)
def test_scalar_sizes(ty, size):
    assert array_of(ty, 1).size == size
    assert copy_type(ty).size == size


def test_derived_sizes():
    assert pointer_to(ty_char).size == 8
    assert pointer_to(array_of(ty_int, 4)).size == 8
    assert array_of(pointer_to(ty_int), 4).size == 32
    assert array_of(ty_int, 4).size == 16
    assert array_of(array_of(ty_int, 4), 3).size == 48
    assert func_type(ty_int).size == 1


@pytest.mark.parametrize(
    "kind,lhs,rhs,size",
    [
        (NodeKind.ADD, ty_int, ty_long, 8),
        (NodeKind.SUB, ty_int, ty_long, 8),
        (NodeKind.MUL, ty_long, ty_int, 8),
        (NodeKind.DIV, ty_long, ty_int, 8),
        (NodeKind.ADD, ty_char, ty_char, 4),
        (NodeKind.ADD, ty_short, ty_short, 4),
        (NodeKind.ADD, ty_float, ty_int, 4),
        (NodeKind.ADD, ty_double, ty_int, 8),
        (NodeKind.DIV, ty_float, ty_int, 4),
    ],
)
def test_usual_arith_conversion_size(kind, lhs, rhs, size):
    node = Node(kind, lhs=typed(lhs), rhs=typed(rhs))
    add_type(node)
    assert node.ty.size == size
    assert node.lhs.kind is NodeKind.CAST
    assert node.rhs.kind is NodeKind.CAST


@pytest.mark.parametrize(
    "then,els,size", [(ty_int, ty_int, 4), (ty_short, ty_char, 4), (ty_long, ty_char, 8)]
)
def test_conditional_size(then, els, size):
    node = Node(NodeKind.COND, cond=typed(ty_int), then=typed(then), els=typed(els))
    add_type(node)
    assert node.ty.size == size


def test_not_is_int():
    node = Node(NodeKind.NOT, lhs=typed(ty_long))
    add_type(node)
    assert node.ty is ty_int


# Further behaviour


def test_predicates():
    assert is_integer(enum_type()) and not is_flonum(ty_int)
    assert is_flonum(ty_ldouble) and not is_integer(ty_double)
    assert is_numeric(ty_char) and not is_numeric(pointer_to(ty_int))


def test_constructors():
    e = enum_type()
    assert (e.kind, e.size, e.align) == (TypeKind.ENUM, 4, 4)
    s = struct_type()
    assert (s.kind, s.size, s.align) == (TypeKind.STRUCT, 0, 1)
    v = vla_of(ty_int, typed(ty_int))
    assert (v.kind, v.size, v.base) == (TypeKind.VLA, 8, ty_int)
    p = pointer_to(ty_int)
    assert p.is_unsigned is True and p.base is ty_int


def test_copy_type_keeps_origin():
    c = copy_type(ty_long)
    assert c.origin is ty_long and c.size == 8 and c is not ty_long


def test_array_compat_needs_unknown_length():
    assert is_compatible(array_of(ty_int, 3), array_of(ty_int, 3)) is False
    assert is_compatible(array_of(ty_int, -1), array_of(ty_int, -1)) is True


def test_num_and_var():
    num = Node(NodeKind.NUM, val=3)
    add_type(num)
    assert num.ty is ty_int
    var = Node(NodeKind.VAR, var=Obj("x", ty=ty_long))
    add_type(var)
    assert var.ty is ty_long


def test_add_type_keeps_existing_type():
    node = Node(NodeKind.NUM, ty=ty_long)
    add_type(node)
    assert node.ty is ty_long


def test_neg_promotes_char():
    node = Node(NodeKind.NEG, lhs=typed(ty_char))
    add_type(node)
    assert node.ty is ty_int


def test_assign_casts_rhs():
    node = Node(NodeKind.ASSIGN, lhs=typed(ty_char), rhs=typed(ty_long))
    add_type(node)
    assert node.ty is ty_char
    assert node.rhs.kind is NodeKind.CAST and node.rhs.ty.origin is ty_char


def test_assign_to_array_fails():
    node = Node(NodeKind.ASSIGN, lhs=typed(array_of(ty_int, 2)), rhs=typed(ty_int))
    with pytest.raises(CompileError, match="not an lvalue"):
        add_type(node)


def test_addr_of_array_is_pointer_to_element():
    node = Node(NodeKind.ADDR, lhs=typed(array_of(ty_int, 3)))
    add_type(node)
    assert node.ty.kind is TypeKind.PTR and node.ty.base is ty_int


def test_deref_errors_and_result():
    with pytest.raises(CompileError, match="invalid pointer dereference"):
        add_type(Node(NodeKind.DEREF, lhs=typed(ty_int)))
    with pytest.raises(CompileError, match="dereferencing a void pointer"):
        add_type(Node(NodeKind.DEREF, lhs=typed(pointer_to(ty_void))))
    node = Node(NodeKind.DEREF, lhs=typed(pointer_to(ty_short)))
    add_type(node)
    assert node.ty is ty_short


def test_comma_member_funcall():
    comma = Node(NodeKind.COMMA, lhs=typed(ty_int), rhs=typed(ty_double))
    add_type(comma)
    assert comma.ty is ty_double
    member = Node(NodeKind.MEMBER, lhs=typed(struct_type()), member=Member(ty=ty_char))
    add_type(member)
    assert member.ty is ty_char
    call = Node(NodeKind.FUNCALL, func_ty=func_type(ty_long))
    add_type(call)
    assert call.ty is ty_long


def test_statement_expression():
    stmt = Node(NodeKind.EXPR_STMT, lhs=typed(ty_long))
    node = Node(NodeKind.STMT_EXPR, body=[Node(NodeKind.BLOCK), stmt])
    add_type(node)
    assert node.ty is ty_long
    with pytest.raises(CompileError, match="returning void"):
        add_type(Node(NodeKind.STMT_EXPR))


def test_cond_with_void_branch():
    node = Node(NodeKind.COND, cond=typed(ty_int), then=typed(ty_int), els=typed(ty_void))
    add_type(node)
    assert node.ty is ty_void


def test_label_val_and_exchange():
    label = Node(NodeKind.LABEL_VAL)
    add_type(label)
    assert label.ty.kind is TypeKind.PTR and label.ty.base is ty_void
    exch = Node(NodeKind.EXCH, lhs=typed(pointer_to(ty_int)), rhs=typed(ty_int))
    add_type(exch)
    assert exch.ty is ty_int
    with pytest.raises(CompileError, match="pointer expected"):
        add_type(Node(NodeKind.EXCH, lhs=typed(ty_int), rhs=typed(ty_int)))


def test_compare_and_swap():
    node = Node(
        NodeKind.CAS,
        cas_addr=typed(pointer_to(ty_int)),
        cas_old=typed(pointer_to(ty_int)),
        cas_new=typed(ty_int),
    )
    add_type(node)
    assert node.ty.kind is TypeKind.BOOL
    bad = Node(NodeKind.CAS, cas_addr=typed(ty_int), cas_old=typed(pointer_to(ty_int)),
               cas_new=typed(ty_int))
    with pytest.raises(CompileError, match="pointer expected"):
        add_type(bad)


def test_pointer_arith_common_type_is_pointer():
    node = Node(NodeKind.SUB, lhs=typed(pointer_to(ty_int)), rhs=typed(pointer_to(ty_int)))
    add_type(node)
    assert node.ty.kind is TypeKind.PTR and node.ty.base is ty_int