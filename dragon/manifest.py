"""
Things related to the manifest portion of the type information:
Turning the syntax of type-expressions into terms of the calculus.

Names resolve against a TypeEnvironment, except within the body of a
type-level function, where the parameters (gamma) come first.
Applications of type-level functions go to the meta-type evaluator.
"""
from typing import Optional
from boozetools.support.foundation import Visitor
from . import syntax
from .ontology import Nom, Phrase
from .calculus import (
	DragonType, OpaqueType,
	union, intersect, product, negate,
)

class Undefined(Exception):
	def __init__(self, nom:Nom):
		super().__init__(nom.text)
		self.nom = nom

class ArityError(Exception):
	def __init__(self, site:Phrase, given:int, needed:int):
		super().__init__(given, needed)
		self.site, self.given, self.needed = site, given, needed

class ArgumentRejected(Exception):
	""" A type-argument is not a member of its parameter's meta-type. """
	def __init__(self, site:Phrase, param:syntax.TypeParameter, arg:DragonType, meta:DragonType):
		super().__init__(param.nom.text, arg)
		self.site, self.param, self.arg, self.meta = site, param, arg, meta

class Translator(Visitor):
	def __init__(self, env, evaluator, gamma:Optional[dict[str, DragonType]] = None):
		self._env = env
		self._evaluator = evaluator
		self._gamma = gamma or {}

	def visit_TypeCall(self, tc:syntax.TypeCall) -> DragonType:
		key = tc.ref.nom.key()
		if key in self._gamma:
			if tc.arguments: raise ArityError(tc, len(tc.arguments), 0)
			return self._gamma[key]
		entry = self._env.type_entry(key)
		if entry is None:
			raise Undefined(tc.ref.nom)
		if isinstance(entry, syntax.TypeFunction):
			args = [self.visit(a) for a in tc.arguments]
			return self._evaluator.apply(entry, args, tc)
		if tc.arguments:
			raise ArityError(tc, len(tc.arguments), 0)
		return entry

	def visit_SumSpec(self, spec:syntax.SumSpec):
		return union(self.visit(p) for p in spec.parts)

	def visit_ProductSpec(self, spec:syntax.ProductSpec):
		return product(self.visit(p) for p in spec.parts)

	def visit_IntersectionSpec(self, spec:syntax.IntersectionSpec):
		return intersect(self.visit(p) for p in spec.parts)

	def visit_NegationSpec(self, spec:syntax.NegationSpec):
		return negate(self.visit(spec.inner))

	def visit_LiftSpec(self, spec:syntax.LiftSpec):
		return self._evaluator.lift(self.visit(spec.predicate))

	def visit_OpaqueSpec(self, spec:syntax.OpaqueSpec):
		# Within a type-function, each distinct set of arguments makes a distinct type.
		identity = (spec, *(t.number for t in self._gamma.values())) if self._gamma else spec
		return OpaqueType(identity, self.visit(spec.inner), spec.label)

	def visit_TypeCondition(self, tc:syntax.TypeCondition):
		subject, bound = self.visit(tc.subject), self.visit(tc.bound)
		if self._evaluator.containment.subtype(subject, bound):
			return self.visit(tc.then)
		else:
			return self.visit(tc.otherwise)
