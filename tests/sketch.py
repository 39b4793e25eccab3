"""
Shorthand for building syntax by hand, since the parser lives elsewhere.
"""
from unittest import mock
from dragon import syntax
from dragon.diagnostics import Report
from dragon.engine import TypeEngine, EngineConfig
from dragon.ontology import Nom

class Silence(Report):
	def __init__(self, max_issues=30):
		super().__init__(verbose=False, max_issues=max_issues)
		self.complain_to_console = mock.Mock()

def quiet_engine(**kwargs) -> TypeEngine:
	return TypeEngine(EngineConfig(**kwargs), Silence())

def ref(name): return syntax.Reference(Nom(name))
def t(name, *args): return syntax.TypeCall(ref(name), args)
def sum_of(*parts): return syntax.SumSpec(parts)
def tuple_of(*parts): return syntax.ProductSpec(parts)
def both(*parts): return syntax.IntersectionSpec(parts)
def bang(inner): return syntax.NegationSpec(inner)
def lift(inner): return syntax.LiftSpec(inner)
def opaque(inner): return syntax.OpaqueSpec(inner)

def lit(value): return syntax.Literal(value)
def look(name): return syntax.Lookup(ref(name))
def binop(lhs, glyph, rhs): return syntax.BinExp(lhs, Nom(glyph), rhs)
def unop(glyph, operand): return syntax.UnaryExp(Nom(glyph), operand)
def call(receiver, name, *args): return syntax.MethodCall(receiver, Nom(name), args)
def is_(subject, texpr): return syntax.IsExpr(subject, texpr)
def coalesce(subject, fallback): return syntax.Coalesce(subject, fallback)

def let(name, expr, texpr=None): return syntax.Let(Nom(name), texpr, expr)
def alias(name, body): return syntax.TypeAlias(Nom(name), body)
def param(name, bound=None): return syntax.TypeParameter(Nom(name), bound)
def type_fn(name, params, body): return syntax.TypeFunction(Nom(name), params, body)
def fn(name, params, result): return syntax.FunctionSpec(Nom(name), params, result)
def const(name, texpr): return syntax.ConstantSpec(Nom(name), texpr)
def trait(name, functions=(), constants=()): return syntax.Trait(Nom(name), functions, constants)
def associate(subject, functions=(), constants=(), claims=()): return syntax.Associate(subject, functions, constants, claims)
def module(*declarations, name="test"): return syntax.Module(name, declarations)
