"""C types, syntax-tree nodes and type inference for expressions."""

from __future__ import annotations

import copy
import enum
from dataclasses import dataclass, field
from typing import Any, NoReturn

from .source import CompileError, Token, error_tok


class TypeKind(enum.Enum):
    """Kinds of C type."""

    VOID = enum.auto()
    BOOL = enum.auto()
    CHAR = enum.auto()
    SHORT = enum.auto()
    INT = enum.auto()
    LONG = enum.auto()
    FLOAT = enum.auto()
    DOUBLE = enum.auto()
    LDOUBLE = enum.auto()
    ENUM = enum.auto()
    PTR = enum.auto()
    FUNC = enum.auto()
    ARRAY = enum.auto()
    VLA = enum.auto()
    STRUCT = enum.auto()
    UNION = enum.auto()


@dataclass(eq=False, repr=False)
class Type:
    """A C type. Identity matters: two structurally equal types may differ."""

    kind: TypeKind
    size: int = 0
    align: int = 1
    is_unsigned: bool = False
    is_atomic: bool = False
    origin: Type | None = None

    # Pointer-to or array-of; arrays behave like pointers wherever this is read.
    base: Type | None = None

    # Declaration
    name: Token | None = None
    name_pos: Token | None = None

    # Array
    array_len: int = 0

    # Variable-length array
    vla_len: Node | None = None
    vla_size: Obj | None = None

    # Struct or union
    members: list[Member] = field(default_factory=list)
    is_flexible: bool = False
    is_packed: bool = False

    # Function
    return_ty: Type | None = None
    params: list[Type] = field(default_factory=list)
    is_variadic: bool = False

    def __repr__(self) -> str:
        sign = "unsigned " if self.is_unsigned and self.kind is not TypeKind.PTR else ""
        return f"Type({sign}{self.kind.name}, size={self.size}, align={self.align})"


@dataclass(eq=False, repr=False)
class Member:
    """A struct or union member."""

    ty: Type
    tok: Token | None = None
    name: Token | None = None
    idx: int = 0
    align: int = 1
    offset: int = 0
    is_bitfield: bool = False
    bit_offset: int = 0
    bit_width: int = 0

    def __repr__(self) -> str:
        label = self.name.text() if self.name is not None else "?"
        return f"Member({label}, offset={self.offset})"


class NodeKind(enum.Enum):
    """Kinds of syntax-tree node."""

    NULL_EXPR = enum.auto()
    ADD = enum.auto()
    SUB = enum.auto()
    MUL = enum.auto()
    DIV = enum.auto()
    NEG = enum.auto()
    MOD = enum.auto()
    BITAND = enum.auto()
    BITOR = enum.auto()
    BITXOR = enum.auto()
    SHL = enum.auto()
    SHR = enum.auto()
    EQ = enum.auto()
    NE = enum.auto()
    LT = enum.auto()
    LE = enum.auto()
    ASSIGN = enum.auto()
    COND = enum.auto()
    COMMA = enum.auto()
    MEMBER = enum.auto()
    ADDR = enum.auto()
    DEREF = enum.auto()
    NOT = enum.auto()
    BITNOT = enum.auto()
    LOGAND = enum.auto()
    LOGOR = enum.auto()
    RETURN = enum.auto()
    IF = enum.auto()
    FOR = enum.auto()
    DO = enum.auto()
    SWITCH = enum.auto()
    CASE = enum.auto()
    BLOCK = enum.auto()
    GOTO = enum.auto()
    GOTO_EXPR = enum.auto()
    LABEL = enum.auto()
    LABEL_VAL = enum.auto()
    FUNCALL = enum.auto()
    EXPR_STMT = enum.auto()
    STMT_EXPR = enum.auto()
    VAR = enum.auto()
    VLA_PTR = enum.auto()
    NUM = enum.auto()
    CAST = enum.auto()
    MEMZERO = enum.auto()
    ASM = enum.auto()
    CAS = enum.auto()
    EXCH = enum.auto()


@dataclass(eq=False, repr=False)
class Obj:
    """A variable or a function."""

    name: str
    ty: Type | None = None
    tok: Token | None = None
    is_local: bool = False
    align: int = 0

    # Local variable
    offset: int = 0

    # Global variable or function
    is_function: bool = False
    is_definition: bool = False
    is_static: bool = False

    # Global variable
    is_tentative: bool = False
    is_tls: bool = False
    init_data: bytes | None = None
    rel: list[Any] = field(default_factory=list)

    # Function
    is_inline: bool = False
    params: list[Obj] = field(default_factory=list)
    body: Node | None = None
    locals: list[Obj] = field(default_factory=list)
    va_area: Obj | None = None
    alloca_bottom: Obj | None = None
    stack_size: int = 0

    # Static inline function
    is_live: bool = False
    is_root: bool = False
    refs: list[str] = field(default_factory=list)

    def __repr__(self) -> str:
        return f"Obj({self.name!r}, {self.ty!r})"


@dataclass(eq=False, repr=False)
class Node:
    """A syntax-tree node."""

    kind: NodeKind
    ty: Type | None = None
    tok: Token | None = None

    lhs: Node | None = None
    rhs: Node | None = None

    # "if" or "for" statement
    cond: Node | None = None
    then: Node | None = None
    els: Node | None = None
    init: Node | None = None
    inc: Node | None = None

    # "break" and "continue" labels
    brk_label: str | None = None
    cont_label: str | None = None

    # Block or statement expression
    body: list[Node] = field(default_factory=list)

    # Struct member access
    member: Member | None = None

    # Function call
    func_ty: Type | None = None
    args: list[Node] = field(default_factory=list)
    pass_by_stack: bool = False
    ret_buffer: Obj | None = None

    # Goto, labeled statement or labels-as-values
    label: str | None = None
    unique_label: str | None = None
    goto_next: Node | None = None

    # Switch
    case_next: Node | None = None
    default_case: Node | None = None

    # Case
    begin: int = 0
    end: int = 0

    # "asm" string literal
    asm_str: str | None = None

    # Atomic compare-and-swap
    cas_addr: Node | None = None
    cas_old: Node | None = None
    cas_new: Node | None = None

    # Atomic op= operators
    atomic_addr: Obj | None = None
    atomic_expr: Node | None = None

    # Variable
    var: Obj | None = None

    # Numeric literal
    val: int = 0
    fval: float = 0.0

    def __repr__(self) -> str:
        return f"Node({self.kind.name}, ty={self.ty!r})"


ty_void = Type(TypeKind.VOID, 1, 1)
ty_bool = Type(TypeKind.BOOL, 1, 1)

ty_char = Type(TypeKind.CHAR, 1, 1)
ty_short = Type(TypeKind.SHORT, 2, 2)
ty_int = Type(TypeKind.INT, 4, 4)
ty_long = Type(TypeKind.LONG, 8, 8)

ty_uchar = Type(TypeKind.CHAR, 1, 1, is_unsigned=True)
ty_ushort = Type(TypeKind.SHORT, 2, 2, is_unsigned=True)
ty_uint = Type(TypeKind.INT, 4, 4, is_unsigned=True)
ty_ulong = Type(TypeKind.LONG, 8, 8, is_unsigned=True)

ty_float = Type(TypeKind.FLOAT, 4, 4)
ty_double = Type(TypeKind.DOUBLE, 8, 8)
ty_ldouble = Type(TypeKind.LDOUBLE, 16, 16)

_INTEGER_KINDS = frozenset(
    {TypeKind.BOOL, TypeKind.CHAR, TypeKind.SHORT, TypeKind.INT, TypeKind.LONG, TypeKind.ENUM}
)
_FLONUM_KINDS = frozenset({TypeKind.FLOAT, TypeKind.DOUBLE, TypeKind.LDOUBLE})


def is_integer(ty: Type) -> bool:
    """True for integral types, including _Bool and enums."""
    return ty.kind in _INTEGER_KINDS


def is_flonum(ty: Type) -> bool:
    """True for floating-point types."""
    return ty.kind in _FLONUM_KINDS


def is_numeric(ty: Type) -> bool:
    """True for integral or floating-point types."""
    return is_integer(ty) or is_flonum(ty)


def is_compatible(t1: Type, t2: Type) -> bool:
    """Type compatibility in the sense of __builtin_types_compatible_p."""
    if t1 is t2:
        return True
    if t1.origin is not None:
        return is_compatible(t1.origin, t2)
    if t2.origin is not None:
        return is_compatible(t1, t2.origin)
    if t1.kind is not t2.kind:
        return False

    kind = t1.kind
    if kind in (TypeKind.CHAR, TypeKind.SHORT, TypeKind.INT, TypeKind.LONG):
        return t1.is_unsigned == t2.is_unsigned
    if kind in _FLONUM_KINDS:
        return True
    if kind is TypeKind.PTR:
        return is_compatible(t1.base, t2.base)
    if kind is TypeKind.FUNC:
        if not is_compatible(t1.return_ty, t2.return_ty):
            return False
        if t1.is_variadic != t2.is_variadic:
            return False
        if len(t1.params) != len(t2.params):
            return False
        return all(is_compatible(p1, p2) for p1, p2 in zip(t1.params, t2.params))
    if kind is TypeKind.ARRAY:
        if not is_compatible(t1.base, t2.base):
            return False
        return t1.array_len < 0 and t2.array_len < 0 and t1.array_len == t2.array_len
    return False


def copy_type(ty: Type) -> Type:
    """A shallow copy of ``ty`` that remembers ``ty`` as its origin."""
    ret = copy.copy(ty)
    ret.origin = ty
    return ret


def pointer_to(base: Type) -> Type:
    """Pointer to ``base``."""
    return Type(TypeKind.PTR, 8, 8, is_unsigned=True, base=base)


def func_type(return_ty: Type) -> Type:
    """Function type returning ``return_ty``; its size is 1 as GCC allows."""
    return Type(TypeKind.FUNC, 1, 1, return_ty=return_ty)


def array_of(base: Type, length: int) -> Type:
    """Array of ``length`` elements of ``base``."""
    return Type(TypeKind.ARRAY, base.size * length, base.align, base=base, array_len=length)


def vla_of(base: Type, length: Node) -> Type:
    """Variable-length array of ``base`` whose length is the expression ``length``."""
    return Type(TypeKind.VLA, 8, 8, base=base, vla_len=length)


def enum_type() -> Type:
    """A fresh enum type."""
    return Type(TypeKind.ENUM, 4, 4)


def struct_type() -> Type:
    """A fresh, empty struct type."""
    return Type(TypeKind.STRUCT, 0, 1)


def _fail(tok: Token | None, message: str) -> NoReturn:
    if tok is None:
        raise CompileError(message)
    error_tok(tok, message)


def _new_cast(expr: Node, ty: Type) -> Node:
    add_type(expr)
    return Node(NodeKind.CAST, ty=copy_type(ty), tok=expr.tok, lhs=expr)


def _get_common_type(ty1: Type, ty2: Type) -> Type:
    if ty1.base is not None:
        return pointer_to(ty1.base)

    if ty1.kind is TypeKind.FUNC:
        return pointer_to(ty1)
    if ty2.kind is TypeKind.FUNC:
        return pointer_to(ty2)

    for kind, ty in (
        (TypeKind.LDOUBLE, ty_ldouble),
        (TypeKind.DOUBLE, ty_double),
        (TypeKind.FLOAT, ty_float),
    ):
        if ty1.kind is kind or ty2.kind is kind:
            return ty

    if ty1.size < 4:
        ty1 = ty_int
    if ty2.size < 4:
        ty2 = ty_int

    if ty1.size != ty2.size:
        return ty2 if ty1.size < ty2.size else ty1
    return ty2 if ty2.is_unsigned else ty1


def _usual_arith_conv(lhs: Node, rhs: Node) -> tuple[Node, Node]:
    ty = _get_common_type(lhs.ty, rhs.ty)
    return _new_cast(lhs, ty), _new_cast(rhs, ty)


_ARITH = frozenset({
    NodeKind.ADD, NodeKind.SUB, NodeKind.MUL, NodeKind.DIV, NodeKind.MOD,
    NodeKind.BITAND, NodeKind.BITOR, NodeKind.BITXOR,
})
_COMPARE = frozenset({NodeKind.EQ, NodeKind.NE, NodeKind.LT, NodeKind.LE})


def add_type(node: Node | None) -> None:
    """Infer and set the type of ``node`` and its children, inserting casts."""
    if node is None or node.ty is not None:
        return

    for child in (node.lhs, node.rhs, node.cond, node.then, node.els, node.init, node.inc):
        add_type(child)
    for child in node.body:
        add_type(child)
    for child in node.args:
        add_type(child)

    kind = node.kind
    if kind is NodeKind.NUM:
        node.ty = ty_int
    elif kind in _ARITH:
        node.lhs, node.rhs = _usual_arith_conv(node.lhs, node.rhs)
        node.ty = node.lhs.ty
    elif kind is NodeKind.NEG:
        ty = _get_common_type(ty_int, node.lhs.ty)
        node.lhs = _new_cast(node.lhs, ty)
        node.ty = ty
    elif kind is NodeKind.ASSIGN:
        if node.lhs.ty.kind is TypeKind.ARRAY:
            _fail(node.lhs.tok, "not an lvalue")
        if node.lhs.ty.kind is not TypeKind.STRUCT:
            node.rhs = _new_cast(node.rhs, node.lhs.ty)
        node.ty = node.lhs.ty
    elif kind in _COMPARE:
        node.lhs, node.rhs = _usual_arith_conv(node.lhs, node.rhs)
        node.ty = ty_int
    elif kind is NodeKind.FUNCALL:
        node.ty = node.func_ty.return_ty
    elif kind in (NodeKind.NOT, NodeKind.LOGOR, NodeKind.LOGAND):
        node.ty = ty_int
    elif kind in (NodeKind.BITNOT, NodeKind.SHL, NodeKind.SHR):
        node.ty = node.lhs.ty
    elif kind in (NodeKind.VAR, NodeKind.VLA_PTR):
        node.ty = node.var.ty
    elif kind is NodeKind.COND:
        if node.then.ty.kind is TypeKind.VOID or node.els.ty.kind is TypeKind.VOID:
            node.ty = ty_void
        else:
            node.then, node.els = _usual_arith_conv(node.then, node.els)
            node.ty = node.then.ty
    elif kind is NodeKind.COMMA:
        node.ty = node.rhs.ty
    elif kind is NodeKind.MEMBER:
        node.ty = node.member.ty
    elif kind is NodeKind.ADDR:
        ty = node.lhs.ty
        node.ty = pointer_to(ty.base if ty.kind is TypeKind.ARRAY else ty)
    elif kind is NodeKind.DEREF:
        base = node.lhs.ty.base
        if base is None:
            _fail(node.tok, "invalid pointer dereference")
        if base.kind is TypeKind.VOID:
            _fail(node.tok, "dereferencing a void pointer")
        node.ty = base
    elif kind is NodeKind.STMT_EXPR:
        if node.body and node.body[-1].kind is NodeKind.EXPR_STMT:
            node.ty = node.body[-1].lhs.ty
            return
        _fail(node.tok, "statement expression returning void is not supported")
    elif kind is NodeKind.LABEL_VAL:
        node.ty = pointer_to(ty_void)
    elif kind is NodeKind.CAS:
        add_type(node.cas_addr)
        add_type(node.cas_old)
        add_type(node.cas_new)
        node.ty = ty_bool
        if node.cas_addr.ty.kind is not TypeKind.PTR:
            _fail(node.cas_addr.tok, "pointer expected")
        if node.cas_old.ty.kind is not TypeKind.PTR:
            _fail(node.cas_old.tok, "pointer expected")
    elif kind is NodeKind.EXCH:
        if node.lhs.ty.kind is not TypeKind.PTR:
            where = node.cas_addr.tok if node.cas_addr is not None else node.lhs.tok
            _fail(where, "pointer expected")
        node.ty = node.lhs.ty.base