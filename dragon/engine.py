"""
The public face of the type engine.

One TypeEngine serves one compilation run: It owns the trait registry,
the fingerprint-keyed caches, and the report. It checks the preamble
on construction, and after that it checks modules in dependency order
and answers questions about types.
"""
from typing import NamedTuple, Optional, Union
from .calculus import DragonType
from .containment import Containment
from .diagnostics import Report, Diagnostic, NormalizationBudgetExceeded, ParadoxGuard
from .environment import TypeEnvironment
from .inference import DeductionEngine, TypedModule
from .meta import MetaEvaluator
from .normalizer import Normalizer
from .preamble import PREAMBLE
from .primitive import ROOT
from .traits import Registry
from . import syntax

class EngineConfig(NamedTuple):
	rewrite_budget: int = 10000     # Normalizer rule applications per query
	evaluation_budget: int = 1000   # Type-level function applications per top-level application
	max_depth: int = 100            # Nesting bound for both, well within the interpreter's stack
	max_issues: int = 30
	verbose: int = 0

class TypeEngine:
	def __init__(self, config:EngineConfig = EngineConfig(), report:Optional[Report] = None):
		self.config = config
		self.report = report or Report(verbose=config.verbose, max_issues=config.max_issues)
		self.registry = Registry()
		self.normalizer = Normalizer(config.rewrite_budget, config.max_depth)
		self.containment = Containment(self.normalizer, self.registry)
		self.resolver = self.containment.resolver
		self.evaluator = MetaEvaluator(self.containment, config.evaluation_budget, config.max_depth)
		self.deduction = DeductionEngine(self.containment, self.evaluator, self.report)
		self.prelude = self.deduction.check_module(PREAMBLE, [ROOT])
		self.report.assert_no_issues("The preamble should check cleanly.")

	def check_module(self, module:syntax.Module, *imports:Union[TypedModule, TypeEnvironment]) -> TypedModule:
		parents = [i.env if isinstance(i, TypedModule) else i for i in imports]
		parents.extend([self.prelude.env, ROOT])
		return self.deduction.check_module(module, parents)

	def lookup_type(self, name:str, env:Optional[TypeEnvironment] = None):
		return (env or self.prelude.env).type_entry(name)

	def normalize(self, t:DragonType) -> Union[DragonType, Diagnostic]:
		try: return self.normalizer.normalize(t)
		except NormalizationBudgetExceeded as nbe: return self.report.budget_exceeded(None, nbe)

	def fingerprint(self, t:DragonType) -> int:
		""" Equal fingerprints mean semantically equal types. """
		return self.normalizer.normalize(t).number

	def subtype(self, a:DragonType, b:DragonType) -> bool:
		return self.containment.subtype(a, b)

	def member(self, value_type:DragonType, b:DragonType) -> bool:
		return self.containment.member(value_type, b)

	def disjoint(self, a:DragonType, b:DragonType) -> bool:
		return self.containment.disjoint(a, b)

	def implements(self, t:DragonType, trait:DragonType) -> bool:
		normalize = self.normalizer.normalize
		return self.resolver.implements(normalize(t), normalize(trait))

	def infer(self, expr:syntax.ValueExpression, env:Optional[TypeEnvironment] = None) -> Union[DragonType, Diagnostic]:
		mark = self.report.count()
		try:
			typ = self.deduction.infer(expr, env or self.prelude.env)
		except NormalizationBudgetExceeded as nbe:
			return self.report.budget_exceeded(expr, nbe)
		except ParadoxGuard as pg:
			return self.report.paradox_guard(expr, pg)
		fresh = self.report.since(mark)
		return fresh[0] if fresh else typ
