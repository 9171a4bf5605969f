from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from lark import Lark, Token, Tree

from .ast import (
    AssignStmt,
    Block,
    BlockStmt,
    BoolLit,
    BreakStmt,
    Call,
    ContinueStmt,
    DistinctDef,
    Expr,
    ExprStmt,
    Field,
    FieldDecl,
    IfStmt,
    IntLit,
    Located,
    Name,
    ObjectDef,
    Param,
    ProcDef,
    Program,
    ReturnStmt,
    SpawnStmt,
    Stmt,
    TypeDecl,
    TypeExpr,
    VarStmt,
    WhileStmt,
)

_GRAMMAR_PATH = Path(__file__).with_name("grammar.lark")
_GRAMMAR_SRC = _GRAMMAR_PATH.read_text()

_PARSER = Lark(
    _GRAMMAR_SRC,
    parser="lalr",
    lexer="basic",
    start="start",
    propagate_positions=True,
    maybe_placeholders=False,
)

# Type constructors spelled with a keyword; all take a single operand except
# `tuple` (n-ary) and `array` (length + element).
_WRAPPER_TYPES = {
    "seq_type": "seq",
    "ref_type": "ref",
    "ptr_type": "ptr",
    "var_type": "var",
    "lent_type": "lent",
}


class ProgramBuildError(ValueError):
    """
    User-facing error raised while shaping the parse tree into the AST.

    The grammar accepts `spawn <expr>;` for any expression; only calls can be
    spawned, and that is enforced here so the driver can report a pinned
    parser diagnostic.
    """

    def __init__(self, message: str, *, loc: Optional[Located]) -> None:
        super().__init__(message)
        self.loc = loc


def parse_program(source: str) -> Program:
    tree = _PARSER.parse(source)
    return _build_program(tree)


def _build_program(tree: Tree) -> Program:
    types: List[TypeDecl] = []
    procs: List[ProcDef] = []
    for child in tree.children:
        kind = _name(child)
        if kind == "type_def":
            types.append(_build_type_def(child))
        elif kind == "proc_def":
            procs.append(_build_proc(child))
    return Program(types=types, procs=procs)


def _build_type_def(tree: Tree) -> TypeDecl:
    name_tok = tree.children[0]
    type_params: List[str] = []
    body: Optional[Tree] = None
    for child in tree.children[1:]:
        if _name(child) == "type_params":
            type_params = _build_type_params(child)
        else:
            body = child
    assert body is not None
    if _name(body) == "distinct_body":
        return DistinctDef(name=name_tok.value, underlying=_build_type_expr(body.children[0]), loc=_loc(tree))
    base: Optional[TypeExpr] = None
    fields: List[FieldDecl] = []
    for child in body.children:
        if _name(child) == "base":
            base = _build_type_expr(child.children[0])
        elif _name(child) == "field_decl":
            fields.append(
                FieldDecl(name=child.children[0].value, type_expr=_build_type_expr(child.children[1]), loc=_loc(child))
            )
    return ObjectDef(name=name_tok.value, type_params=type_params, base=base, fields=fields, loc=_loc(tree))


def _build_type_params(tree: Tree) -> List[str]:
    return [tok.value for tok in tree.children if isinstance(tok, Token)]


def _build_type_expr(node: Tree | Token) -> TypeExpr:
    kind = _name(node)
    loc = _loc(node) if isinstance(node, Tree) else _loc_from_token(node)
    children = node.children if isinstance(node, Tree) else []
    if kind == "named_type":
        return TypeExpr(name=children[0].value, loc=loc)
    if kind == "generic_type":
        return TypeExpr(name=children[0].value, args=[_build_type_expr(c) for c in children[1:]], loc=loc)
    if kind == "array_type":
        return TypeExpr(name="array", args=[_build_type_expr(children[1])], length=int(children[0].value), loc=loc)
    if kind == "tuple_type":
        return TypeExpr(name="tuple", args=[_build_type_expr(c) for c in children], loc=loc)
    if kind in _WRAPPER_TYPES:
        return TypeExpr(name=_WRAPPER_TYPES[kind], args=[_build_type_expr(children[0])], loc=loc)
    raise ValueError(f"unexpected type node {kind}")


def _build_proc(tree: Tree) -> ProcDef:
    name_tok = tree.children[0].children[0]
    is_hook = name_tok.type == "HOOK_NAME"
    name = name_tok.value[1:-1] if is_hook else name_tok.value
    type_params: List[str] = []
    params: List[Param] = []
    result: Optional[TypeExpr] = None
    body: Optional[Block] = None
    for child in tree.children[1:]:
        kind = _name(child)
        if kind == "type_params":
            type_params = _build_type_params(child)
        elif kind == "param":
            params.append(Param(name=child.children[0].value, type_expr=_build_type_expr(child.children[1]), loc=_loc(child)))
        elif kind == "result_type":
            result = _build_type_expr(child.children[0])
        elif kind == "block":
            body = _build_block(child)
    assert body is not None
    return ProcDef(
        name=name,
        is_hook=is_hook,
        type_params=type_params,
        params=params,
        result=result,
        body=body,
        loc=_loc(tree),
    )


def _build_block(tree: Tree) -> Block:
    statements: List[Stmt] = []
    for child in tree.children:
        if isinstance(child, Tree):
            statements.append(_build_stmt(child))
    return Block(statements=statements, loc=_loc(tree))


def _build_stmt(tree: Tree) -> Stmt:
    kind = _name(tree)
    loc = _loc(tree)
    if kind in ("var_stmt", "let_stmt"):
        return _build_var_stmt(tree, mutable=kind == "var_stmt")
    if kind == "assign_stmt":
        return AssignStmt(target=_build_expr(tree.children[0]), value=_build_expr(tree.children[1]), loc=loc)
    if kind == "expr_stmt":
        return ExprStmt(expr=_build_expr(tree.children[0]), loc=loc)
    if kind == "return_stmt":
        value = _build_expr(tree.children[1]) if len(tree.children) > 1 else None
        return ReturnStmt(value=value, loc=loc)
    if kind == "if_stmt":
        return _build_if_stmt(tree)
    if kind == "while_stmt":
        return WhileStmt(cond=_build_expr(tree.children[0]), body=_build_block(tree.children[1]), loc=loc)
    if kind == "break_stmt":
        return BreakStmt(loc=loc)
    if kind == "continue_stmt":
        return ContinueStmt(loc=loc)
    if kind == "block_stmt":
        return BlockStmt(block=_build_block(tree.children[0]), loc=loc)
    if kind == "spawn_stmt":
        call = _build_expr(tree.children[0])
        if not isinstance(call, Call):
            raise ProgramBuildError("spawn expects a call expression", loc=loc)
        return SpawnStmt(call=call, loc=loc)
    raise ValueError(f"unexpected statement node {kind}")


def _build_var_stmt(tree: Tree, *, mutable: bool) -> VarStmt:
    type_expr: Optional[TypeExpr] = None
    value: Optional[Expr] = None
    for child in tree.children[1:]:
        if _name(child) == "decl_type":
            type_expr = _build_type_expr(child.children[0])
        elif _name(child) == "decl_init":
            value = _build_expr(child.children[0])
    return VarStmt(name=tree.children[0].value, type_expr=type_expr, value=value, mutable=mutable, loc=_loc(tree))


def _build_if_stmt(tree: Tree) -> IfStmt:
    cond = _build_expr(tree.children[0])
    then_block = _build_block(tree.children[1])
    else_block: Optional[Block] = None
    if len(tree.children) > 2:
        arm = tree.children[2].children[0]
        if _name(arm) == "if_stmt":
            # `else if` is sugar for an else block holding a single if.
            nested = _build_if_stmt(arm)
            else_block = Block(statements=[nested], loc=nested.loc)
        else:
            else_block = _build_block(arm)
    return IfStmt(cond=cond, then_block=then_block, else_block=else_block, loc=_loc(tree))


def _build_expr(node: Tree | Token) -> Expr:
    kind = _name(node)
    if kind == "name":
        tok = node.children[0]
        return Name(ident=tok.value, loc=_loc_from_token(tok))
    if kind == "int_lit":
        tok = node.children[0]
        return IntLit(value=int(tok.value), loc=_loc_from_token(tok))
    if kind in ("true_lit", "false_lit"):
        tok = node.children[0]
        return BoolLit(value=kind == "true_lit", loc=_loc_from_token(tok))
    if kind == "call":
        fn_tok = node.children[0]
        args = [_build_expr(c) for c in node.children[1:]]
        return Call(fn=fn_tok.value, args=args, loc=_loc_from_token(fn_tok))
    if kind == "field":
        subject = _build_expr(node.children[0])
        return Field(subject=subject, name=node.children[1].value, loc=_loc(node))
    raise ValueError(f"unexpected expression node {kind}")


def _loc(tree: Tree) -> Located:
    meta = tree.meta
    return Located(line=getattr(meta, "line", None), column=getattr(meta, "column", None))


def _loc_from_token(token: Token) -> Located:
    return Located(line=token.line, column=token.column)


def _name(node: Tree | Token) -> str:
    if isinstance(node, Tree):
        data = node.data
        if isinstance(data, Token):
            return data.value
        return data
    if isinstance(node, Token):
        return node.type
    return str(node)
