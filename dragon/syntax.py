"""
The set of parse-nodes in simple form.
The parser (an external collaborator) calls these constructors bottom-up.
Class-level type annotations make peace with pycharm wherever later passes add fields.
"""
from typing import Any, Optional, Sequence
from .ontology import (
	TypeExpression, ValueExpression, Phrase,
	Nom, Symbol, TypeSymbol, TermSymbol,
)

def _right_of(items:Sequence[Phrase], fallback:Phrase) -> int:
	return (items[-1] if items else fallback).right()

class Reference(Phrase):
	nom:Nom
	def __init__(self, nom:Nom): self.nom = nom
	def left(self): return self.nom.left()
	def right(self): return self.nom.right()
	def __repr__(self): return "<ref:%s>"%self.nom.text

###############################################################################
# Type expressions

class TypeCall(TypeExpression):
	""" A name in type-context, maybe with arguments: int, Pair[int, str], Self """
	def __init__(self, ref: Reference, arguments: Optional[Sequence[TypeExpression]] = ()):
		assert isinstance(ref, Reference)
		self.ref, self.arguments = ref, tuple(arguments or ())
	def left(self): return self.ref.left()
	def right(self): return _right_of(self.arguments, self.ref)
	def __repr__(self):
		return "%s[%s]"%(self.ref, self.arguments) if self.arguments else repr(self.ref)

class _Compound(TypeExpression):
	""" Common ground for the n-ary type operators. """
	def __init__(self, parts: Sequence[TypeExpression]):
		assert parts
		self.parts = tuple(parts)
	def left(self): return self.parts[0].left()
	def right(self): return self.parts[-1].right()

class SumSpec(_Compound):
	""" a | b | c """

class ProductSpec(_Compound):
	""" (a, b, c) """

class IntersectionSpec(_Compound):
	""" a & b & c """

class NegationSpec(TypeExpression):
	""" !a """
	def __init__(self, inner: TypeExpression, bang: Optional[Nom] = None):
		self.inner = inner
		self._bang = bang
	def left(self): return (self._bang or self.inner).left()
	def right(self): return self.inner.right()

class LiftSpec(TypeExpression):
	""" {predicate} -- the set of types which satisfy the predicate """
	def __init__(self, predicate: TypeExpression):
		self.predicate = predicate
	def left(self): return self.predicate.left()
	def right(self): return self.predicate.right()

class OpaqueSpec(TypeExpression):
	"""
	type(inner) -- This node *is* the identity of the new type.
	Two of these with the same inner type are still different types.
	"""
	label: Optional[str]
	def __init__(self, inner: TypeExpression, label:Optional[str] = None):
		self.inner = inner
		self.label = label
	def left(self): return self.inner.left()
	def right(self): return self.inner.right()

class TypeCondition(TypeExpression):
	""" if subject <: bound then this else that -- only sensible within type-functions. """
	def __init__(self, subject:TypeExpression, bound:TypeExpression, then:TypeExpression, otherwise:TypeExpression):
		self.subject, self.bound = subject, bound
		self.then, self.otherwise = then, otherwise
	def left(self): return self.subject.left()
	def right(self): return self.otherwise.right()

###############################################################################
# Value expressions

class Literal(ValueExpression):
	def __init__(self, value:Any, spot:Optional[int] = None):
		self.value = value
		self.spot = spot or 0
	def left(self): return self.spot
	def right(self): return self.spot
	def __repr__(self): return "<lit:%r>"%(self.value,)

class Lookup(ValueExpression):
	def __init__(self, ref:Reference): self.ref = ref
	def left(self): return self.ref.left()
	def right(self): return self.ref.right()
	def __repr__(self): return "<lookup:%s>"%self.ref.nom.text

class TupleExpr(ValueExpression):
	def __init__(self, items:Sequence[ValueExpression]):
		assert items
		self.items = tuple(items)
	def left(self): return self.items[0].left()
	def right(self): return self.items[-1].right()

class TypeValue(ValueExpression):
	""" A type, mentioned where a value belongs. Its value is the type itself. """
	def __init__(self, type_expr:TypeExpression): self.type_expr = type_expr
	def left(self): return self.type_expr.left()
	def right(self): return self.type_expr.right()

class BinExp(ValueExpression):
	def __init__(self, lhs:ValueExpression, op:Nom, rhs:ValueExpression):
		self.lhs, self.op, self.rhs = lhs, op, rhs
	def left(self): return self.lhs.left()
	def right(self): return self.rhs.right()

class UnaryExp(ValueExpression):
	def __init__(self, op:Nom, operand:ValueExpression):
		self.op, self.operand = op, operand
	def left(self): return self.op.left()
	def right(self): return self.operand.right()

class MethodCall(ValueExpression):
	""" receiver.name(args) -- calls an associated function of the receiver's type. """
	def __init__(self, receiver:ValueExpression, method:Nom, args:Sequence[ValueExpression] = ()):
		self.receiver, self.method, self.args = receiver, method, tuple(args)
	def left(self): return self.receiver.left()
	def right(self): return _right_of(self.args, self.method)

class IsExpr(ValueExpression):
	""" subject is T -- membership test; one of the narrowing operators. """
	def __init__(self, subject:ValueExpression, type_expr:TypeExpression):
		self.subject, self.type_expr = subject, type_expr
	def left(self): return self.subject.left()
	def right(self): return self.type_expr.right()

class Coalesce(ValueExpression):
	""" subject ?? fallback -- the other narrowing operator: it discards `none`. """
	def __init__(self, subject:ValueExpression, fallback:ValueExpression):
		self.subject, self.fallback = subject, fallback
	def left(self): return self.subject.left()
	def right(self): return self.fallback.right()

###############################################################################
# Declarations

class Let(TermSymbol):
	""" Every binding is initialized where it is declared. The annotation is optional. """
	def __init__(self, nom:Nom, type_expr:Optional[TypeExpression], expr:ValueExpression):
		super().__init__(nom)
		self.type_expr = type_expr
		self.expr = expr
	def right(self): return self.expr.right()

class TypeAlias(TypeSymbol):
	def __init__(self, nom:Nom, body:TypeExpression):
		super().__init__(nom)
		self.body = body
	def right(self): return self.body.right()

class TypeParameter(TypeSymbol):
	bound: Optional[TypeExpression]
	meta: Any  # The meta-type of acceptable arguments; filled in during checking.
	def __init__(self, nom:Nom, bound:Optional[TypeExpression] = None):
		super().__init__(nom)
		self.bound = bound

class TypeFunction(TypeSymbol):
	"""
	A pure function from types to types. The type-checker runs these
	on the spot with whatever arguments they are given.
	"""
	scope: Any  # The environment wherein the body makes sense; filled in during checking.
	def __init__(self, nom:Nom, params:Sequence[TypeParameter], body:TypeExpression):
		super().__init__(nom)
		self.params = tuple(params)
		self.body = body
	def right(self): return self.body.right()

class FunctionSpec(Symbol):
	""" The signature of an associated function: name(params) -> result """
	def __init__(self, nom:Nom, params:Sequence[TypeExpression], result:TypeExpression):
		super().__init__(nom)
		self.params = tuple(params)
		self.result = result
	def right(self): return self.result.right()

class ConstantSpec(Symbol):
	def __init__(self, nom:Nom, type_expr:TypeExpression):
		super().__init__(nom)
		self.type_expr = type_expr
	def right(self): return self.type_expr.right()

class Trait(TypeSymbol):
	""" Required functions and constants, written in terms of `Self`. """
	def __init__(self, nom:Nom, functions:Sequence[FunctionSpec] = (), constants:Sequence[ConstantSpec] = ()):
		super().__init__(nom)
		self.functions = tuple(functions)
		self.constants = tuple(constants)
	def right(self): return _right_of(self.constants or self.functions, self.nom)

class Associate(Phrase):
	"""
	Attach functions and constants to the namespace of some type.
	Claims are traits the author expects this to satisfy; they get checked right away.
	"""
	def __init__(
			self, subject:TypeExpression,
			functions:Sequence[FunctionSpec] = (),
			constants:Sequence[ConstantSpec] = (),
			claims:Sequence[TypeExpression] = (),
	):
		self.subject = subject
		self.functions = tuple(functions)
		self.constants = tuple(constants)
		self.claims = tuple(claims)
	def left(self): return self.subject.left()
	def right(self): return _right_of(self.claims or self.constants or self.functions, self.subject)

class Module:
	def __init__(self, name:str, declarations:Sequence[Phrase]):
		self.name = name
		self.declarations = tuple(declarations)
	def __repr__(self): return "<module %s>"%self.name
