"""calc 工具：安全的四则运算表达式求值。

只接受数字、括号、+ - * / % ^ ** 以及少量数学函数和常量，
通过 ast 白名单求值，任何非法输入都返回 "NaN" 文本而不是抛出异常。
"""

import ast
import math
import operator
from typing import Any, Callable, Dict

from ask_core.infrastructure.logging.logger import logger


NAN_TEXT = "NaN"

SAFE_BIN_OPS: Dict[type, Callable[[float, float], float]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}
SAFE_UNARY_OPS: Dict[type, Callable[[float], float]] = {
    ast.UAdd: lambda v: v,
    ast.USub: lambda v: -v,
}
SAFE_NAMES: Dict[str, float] = {"pi": math.pi, "e": math.e}
SAFE_FUNCS: Dict[str, Callable[..., float]] = {
    "abs": abs,
    **{
        name: getattr(math, name)
        for name in ("sqrt", "log", "log10", "sin", "cos", "tan", "exp", "ceil", "floor")
    },
}


def evaluate(expr: str) -> float:
    """对表达式求值，非法表达式抛出 ValueError / ArithmeticError。"""

    text = (expr or "").strip()
    if not text:
        raise ValueError("empty expression")
    # ^ 与 ** 同为乘方：优先级高于乘除，右结合
    tree = ast.parse(text.replace("^", "**"), mode="eval")

    def _eval(node: ast.AST) -> float:
        if isinstance(node, ast.Expression):
            return _eval(node.body)
        if isinstance(node, ast.Constant):
            if isinstance(node.value, bool) or not isinstance(node.value, (int, float)):
                raise ValueError(f"unsupported literal: {node.value!r}")
            return float(node.value)
        if isinstance(node, ast.BinOp):
            op = SAFE_BIN_OPS.get(type(node.op))
            if op is None:
                raise ValueError(f"unsupported operator: {type(node.op).__name__}")
            return float(op(_eval(node.left), _eval(node.right)))
        if isinstance(node, ast.UnaryOp):
            op = SAFE_UNARY_OPS.get(type(node.op))
            if op is None:
                raise ValueError(f"unsupported operator: {type(node.op).__name__}")
            return op(_eval(node.operand))
        if isinstance(node, ast.Name):
            if node.id in SAFE_NAMES:
                return SAFE_NAMES[node.id]
            raise ValueError(f"unknown name: {node.id}")
        if isinstance(node, ast.Call):
            if not isinstance(node.func, ast.Name) or node.func.id not in SAFE_FUNCS:
                raise ValueError("function not allowed")
            if node.keywords:
                raise ValueError("keyword arguments not allowed")
            return float(SAFE_FUNCS[node.func.id](*[_eval(arg) for arg in node.args]))
        raise ValueError(f"unsupported syntax: {type(node).__name__}")

    return _eval(tree)


def format_number(value: float) -> str:
    # 统一输出 repr 形式：1e8 写作 "100000000.0"，1e16 起为 "1e+16"
    if math.isnan(value):
        return NAN_TEXT
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    return repr(float(value))


def calc(expr: str) -> str:
    """计算数学表达式，返回结果文本；表达式无效时返回 "NaN"。"""

    try:
        result = evaluate(expr)
    except (SyntaxError, ValueError, ArithmeticError, TypeError, RecursionError) as exc:
        logger.warning(
            "calc failed",
            extra={"extra": {"expr": expr, "error": f"{type(exc).__name__}: {exc}"}},
        )
        return NAN_TEXT
    return format_number(result)
