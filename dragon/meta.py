"""
Meta-types, and the constant-folding interpreter for type-level functions.

`{P}` lifts a first-order predicate into the meta-type whose members
are the types contained in P. A type-level function takes types and gives
back a type; it can branch on subtyping and call itself, but it cannot
do anything else. Evaluation happens on the spot, under a step budget
and a depth limit, with results remembered per argument-fingerprints.
"""
from typing import Sequence
from . import syntax
from .ontology import Phrase
from .calculus import DragonType, MetaLift, type_of_type
from .diagnostics import NormalizationBudgetExceeded
from .manifest import Translator, ArityError, ArgumentRejected

class MetaEvaluator:
	steps: int

	def __init__(self, containment, budget:int=1000, max_depth:int=100):
		self.containment = containment
		self.budget = budget
		self.max_depth = max_depth
		self._memo = {}
		self.steps = 0
		self._depth = 0

	@staticmethod
	def lift(predicate:DragonType) -> DragonType:
		return MetaLift(predicate)

	def admits(self, meta:DragonType, candidate:DragonType) -> bool:
		""" Is the type `candidate` a member of the meta-type `meta`? """
		return self.containment.member(type_of_type(candidate), meta)

	def apply(self, fn:syntax.TypeFunction, args:Sequence[DragonType], site:Phrase) -> DragonType:
		if len(args) != len(fn.params):
			raise ArityError(site, len(args), len(fn.params))
		for param, arg in zip(fn.params, args):
			if not self.admits(param.meta, arg):
				raise ArgumentRejected(site, param, arg, param.meta)
		key = fn, tuple(a.number for a in args), self.containment.registry.generation
		if key in self._memo: return self._memo[key]
		if not self._depth: self.steps = 0
		self.steps += 1
		if self.steps > self.budget:
			raise NormalizationBudgetExceeded("evaluation", self.budget)
		limit = min(self.budget, self.max_depth)
		if self._depth >= limit:
			raise NormalizationBudgetExceeded("evaluation", limit)
		gamma = {param.nom.key(): arg for param, arg in zip(fn.params, args)}
		self._depth += 1
		try: result = Translator(fn.scope, self, gamma).visit(fn.body)
		finally: self._depth -= 1
		return self._memo.setdefault(key, result)
