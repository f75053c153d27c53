"""
Parse-time checks that need the tree but no cross-file knowledge:
missing returns in typed methods and under-supplied implicit-receiver calls.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Iterator, List, Optional

from ..config import MAX_HIERARCHY_DEPTH, SELF_REFERENCE, VOID_TYPE
from ..exceptions import ErrorCode, GroovyLspError
from .classes import (
    Block,
    CallSite,
    ClassNode,
    IfStatement,
    JumpStatement,
    LabeledStatement,
    LoopStatement,
    MethodNode,
    ReturnStatement,
    SwitchStatement,
    SyncStatement,
    ThrowStatement,
    TryStatement,
)
from .model import Diagnostic, SyntaxModel, own_expressions, walk_statements

logger = logging.getLogger(__name__)


# --- Missing return ---


@dataclass(frozen=True)
class FlowResult:
    always_returns: bool
    can_complete_normally: bool


FALLS_THROUGH = FlowResult(always_returns=False, can_complete_normally=True)
RETURNS = FlowResult(always_returns=True, can_complete_normally=False)
JUMPS = FlowResult(always_returns=False, can_complete_normally=False)


def _analyse_sequence(statements: List) -> FlowResult:
    reachable = True
    saw_return = False
    for stmt in statements:
        if not reachable:
            break
        result = analyse_statement(stmt)
        if result.always_returns:
            saw_return = True
            reachable = False
        elif not result.can_complete_normally:
            reachable = False
    return FlowResult(always_returns=saw_return and not reachable, can_complete_normally=reachable)


def _analyse_switch(stmt: SwitchStatement) -> FlowResult:
    if not stmt.has_default:
        return FALLS_THROUGH
    # walk backwards so a group without `break` takes the result of the group it falls into
    following: Optional[FlowResult] = None
    all_return = True
    for group in reversed(stmt.groups):
        result = _analyse_sequence(group.statements)
        if not result.always_returns and result.can_complete_normally and following is not None:
            result = following
        all_return = all_return and result.always_returns
        following = result
    return RETURNS if all_return else FALLS_THROUGH


def analyse_statement(stmt) -> FlowResult:
    """Approximates whether every path through `stmt` ends in return or throw."""
    if stmt is None:
        return FALLS_THROUGH
    if isinstance(stmt, (ReturnStatement, ThrowStatement)):
        return RETURNS
    if isinstance(stmt, JumpStatement):
        return JUMPS
    if isinstance(stmt, Block):
        return _analyse_sequence(stmt.statements)
    if isinstance(stmt, IfStatement):
        if stmt.else_branch is None:
            return FALLS_THROUGH
        then_result = analyse_statement(stmt.then_branch)
        else_result = analyse_statement(stmt.else_branch)
        return FlowResult(
            always_returns=then_result.always_returns and else_result.always_returns,
            can_complete_normally=then_result.can_complete_normally or else_result.can_complete_normally,
        )
    if isinstance(stmt, SwitchStatement):
        return _analyse_switch(stmt)
    if isinstance(stmt, TryStatement):
        always = analyse_statement(stmt.body).always_returns and all(
            analyse_statement(c.body).always_returns for c in stmt.catches
        )
        return FlowResult(always_returns=always, can_complete_normally=not always)
    if isinstance(stmt, SyncStatement):
        return analyse_statement(stmt.body)
    if isinstance(stmt, LabeledStatement):
        return analyse_statement(stmt.statement)
    if isinstance(stmt, LoopStatement):
        return FALLS_THROUGH
    return FALLS_THROUGH


def _needs_return_check(method: MethodNode) -> bool:
    if method.is_constructor or method.body is None:
        return False
    return method.return_type is not None and method.return_type != VOID_TYPE


def check_missing_returns(methods: Iterable[MethodNode]) -> List[Diagnostic]:
    diagnostics = []
    for method in methods:
        if not _needs_return_check(method):
            continue
        result = analyse_statement(method.body)
        logger.debug("flow of %s: %s", method.name, result)
        if result.always_returns:
            continue
        error = GroovyLspError(ErrorCode.MISSING_RETURN, name=method.name, return_type=method.return_type)
        diagnostics.append(Diagnostic(message=error.message, line=max(method.line - 1, 0), column=0))
    return diagnostics


# --- Call arity ---


def build_signature_table(methods: Iterable[MethodNode]) -> Dict[str, List[int]]:
    """Maps each method name to the required-argument count of every overload."""
    table: Dict[str, List[int]] = {}
    for method in methods:
        table.setdefault(method.name, []).append(method.required_arg_count)
    return table


def arity_message(name: str, required: int, provided: int) -> str:
    return GroovyLspError(
        ErrorCode.TOO_FEW_ARGUMENTS,
        name=name,
        required=required,
        noun="argument" if required == 1 else "arguments",
        provided=provided,
        verb="was" if provided == 1 else "were",
    ).message


def _is_implicit_receiver(call: CallSite) -> bool:
    if call.is_constructor:
        return False
    return not call.is_qualified or call.receiver == SELF_REFERENCE


def _calls_in(statements: Iterable) -> Iterator[CallSite]:
    for stmt in walk_statements(statements):
        for expression in own_expressions(stmt):
            yield from expression.calls


def _check_calls(calls: Iterable[CallSite], table: Dict[str, List[int]]) -> List[Diagnostic]:
    diagnostics = []
    for call in calls:
        if not _is_implicit_receiver(call) or call.name not in table:
            continue
        required = min(table[call.name])
        if call.arg_count >= required:
            continue
        diagnostics.append(
            Diagnostic(
                message=arity_message(call.name, required, call.arg_count),
                line=call.line - 1,
                column=call.column - 1,
            )
        )
    return diagnostics


def hierarchy_methods(model: SyntaxModel, cls: ClassNode) -> List[MethodNode]:
    """Methods of `cls` and of every superclass declared in the same document."""
    methods: List[MethodNode] = []
    visited = set()
    current: Optional[ClassNode] = cls
    while current is not None and current.qualified_name not in visited and len(visited) < MAX_HIERARCHY_DEPTH:
        visited.add(current.qualified_name)
        methods.extend(current.methods)
        current = model.find_class(current.superclass)
    return methods


def _class_statements(cls: ClassNode) -> List:
    statements = []
    for method in list(cls.methods) + list(cls.constructors):
        if method.body is not None:
            statements.append(method.body)
    return statements


def _class_initializer_calls(cls: ClassNode) -> Iterator[CallSite]:
    for node in list(cls.fields) + list(cls.properties):
        if node.initializer is not None:
            yield from node.initializer.calls


def check_arity(model: SyntaxModel) -> List[Diagnostic]:
    diagnostics = []

    script_table = build_signature_table(model.script_methods)
    script_statements = list(model.root.statements) + [m.body for m in model.script_methods if m.body is not None]
    diagnostics.extend(_check_calls(_calls_in(script_statements), script_table))

    for cls in model.classes:
        table = build_signature_table(hierarchy_methods(model, cls))
        if not table:
            continue
        diagnostics.extend(_check_calls(_calls_in(_class_statements(cls)), table))
        diagnostics.extend(_check_calls(_class_initializer_calls(cls), table))
    return diagnostics


def check_qualified_arity(
    model: SyntaxModel, lookup: Callable[[str], Optional[List[MethodNode]]]
) -> List[Diagnostic]:
    """
    Checks `receiver.method(...)` calls whose receiver `lookup` recognises,
    typically a library script name. The range starts at the receiver.
    """
    diagnostics = []
    statements = list(model.root.statements) + [m.body for m in model.script_methods if m.body is not None]
    for cls in model.classes:
        statements.extend(_class_statements(cls))
    for call in _calls_in(statements):
        if not call.is_qualified or not call.receiver or call.receiver == SELF_REFERENCE:
            continue
        methods = lookup(call.receiver)
        if not methods:
            continue
        table = build_signature_table(methods)
        if call.name not in table:
            continue
        required = min(table[call.name])
        if call.arg_count >= required:
            continue
        diagnostics.append(
            Diagnostic(
                message=arity_message(call.name, required, call.arg_count),
                line=call.line - 1,
                column=(call.receiver_col or call.column) - 1,
            )
        )
    return diagnostics


def collect_semantic_diagnostics(
    model: SyntaxModel, check_missing_return: bool = True, check_arity_calls: bool = True
) -> List[Diagnostic]:
    diagnostics: List[Diagnostic] = []
    if check_missing_return:
        methods = list(model.script_methods)
        for cls in model.classes:
            methods.extend(cls.methods)
        diagnostics.extend(check_missing_returns(methods))
    if check_arity_calls:
        diagnostics.extend(check_arity(model))
    diagnostics.sort(key=lambda d: (d.line, d.column))
    return diagnostics
