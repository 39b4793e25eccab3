"""
Gradual inference: check a module's declarations in order,
synthesize the types of initializers, and compile narrowing obligations.

Every binding is initialized where it's declared, so synthesis suffices:
The type of an initializer is just computed, bottom-up. An annotation may be
broader than what the initializer shows (typically some sum), and then the
binding keeps both: the declared type, and the evidence. Each use site that
needs something narrower gets an obligation: PROVEN when the evidence settles
it statically, or DEFERRED to a run-time tag check in the narrowing operators.

Mistakes become diagnostics, and the offending declaration gets the error
type, so checking continues and one run can report many independent problems.
"""
from itertools import product as cartesian
from typing import NamedTuple, Optional, Sequence
from boozetools.support.foundation import Visitor
from . import syntax
from .ontology import Phrase, Nom
from .calculus import (
	DragonType, SumType, MetaLift, TraitRef, UNIVERSE, ERROR, SELF,
	union, intersect, product, negate, type_of_type, is_capability,
)
from .containment import Containment
from .diagnostics import Report, Diagnostic, NormalizationBudgetExceeded, ParadoxGuard
from .environment import TypeEnvironment, Binding, AlreadyExists
from .manifest import Translator, Undefined, ArityError, ArgumentRejected
from .meta import MetaEvaluator
from .traits import Signature, Namespace
from . import primitive

PROVEN, REFUTED, DEFERRED = "proven", "refuted", "deferred"

class Obligation(NamedTuple):
	""" What a narrowing operator (or implicit narrowing) must establish at `site`. """
	site: Phrase
	subject: DragonType
	target: DragonType
	status: str

class TypedModule(NamedTuple):
	""" The typed IR handed on to code generation. """
	module: syntax.Module
	env: TypeEnvironment
	types: dict[Phrase, DragonType]
	obligations: list[Obligation]
	diagnostics: list[Diagnostic]

class _Selection(NamedTuple):
	status: str   # One of OK, DEFERRED, _AMBIGUOUS, _NO_CASE
	result: DragonType
	chosen: tuple[Signature, ...]
	culprit: tuple[DragonType, ...]

OK = "ok"
_AMBIGUOUS, _NO_CASE = "ambiguous", "no-case"

def _disjuncts(t:DragonType) -> tuple[DragonType, ...]:
	return t.members if isinstance(t, SumType) else (t,)

def _is_meta(t:DragonType) -> bool:
	return t is UNIVERSE or isinstance(t, MetaLift)

class DeductionEngine(Visitor):
	_env: TypeEnvironment
	_types: dict[Phrase, DragonType]
	_evidence: dict[Phrase, DragonType]
	_obligations: list[Obligation]

	def __init__(self, containment:Containment, evaluator:MetaEvaluator, report:Report):
		self._containment = containment
		self._evaluator = evaluator
		self._report = report
		self._registry = containment.registry
		self._resolver = containment.resolver
		self._normalize = containment.normalizer.normalize
		self._reset(None)

	def _reset(self, env):
		self._env = env
		self._types, self._evidence, self._obligations = {}, {}, []

	def check_module(self, module:syntax.Module, parents:Sequence[TypeEnvironment]) -> TypedModule:
		self._report.info("Checking module", module.name)
		mark = self._report.count()
		env = TypeEnvironment(module.name, parents)
		self._reset(env)
		for d in module.declarations:
			try:
				self.visit(d)
			except NormalizationBudgetExceeded as nbe:
				self._report.budget_exceeded(d, nbe)
				self._poison(d)
			except ParadoxGuard as pg:
				self._report.paradox_guard(d, pg)
				self._poison(d)
		env.finalize()
		it = TypedModule(module, env, self._types, self._obligations, self._report.since(mark))
		self._report.info("Finished", module.name, "with", len(it.diagnostics), "diagnostic(s)")
		return it

	def infer(self, expr:syntax.ValueExpression, env:TypeEnvironment) -> DragonType:
		self._reset(env)
		return self.visit(expr)

	def _poison(self, d:Phrase):
		""" Whatever this declaration meant to define now has the error type. """
		if isinstance(d, syntax.Let) and d.nom.key() not in self._env.terms:
			self._env.define_term(d.nom, Binding(ERROR, ERROR, d))
			self._types[d] = ERROR
		elif isinstance(d, (syntax.TypeAlias, syntax.TypeFunction, syntax.Trait)) and d.nom.key() not in self._env.types:
			self._env.define_type(d.nom, ERROR)

	###########################################################################
	# Type-expressions

	def _manifest(self, texpr:syntax.TypeExpression, gamma:Optional[dict[str, DragonType]] = None) -> DragonType:
		translator = Translator(self._env, self._evaluator, gamma)
		try:
			typ = translator.visit(texpr)
		except Undefined as ex:
			self._report.undefined_name(ex.nom)
			return ERROR
		except ArityError as ex:
			self._report.wrong_type_arity(ex.site, ex.given, ex.needed)
			return ERROR
		except ArgumentRejected as ex:
			if is_capability(ex.meta):
				self._report.unresolved_trait(ex.site, ex.arg, ex.meta)
			else:
				self._report.argument_rejected(ex.site, ex.param.nom, ex.arg, ex.meta)
			return ERROR
		return self._normalize(typ)

	def _signature(self, fs:syntax.FunctionSpec, receiver:DragonType) -> Signature:
		gamma = {"Self": receiver}
		params = tuple(self._manifest(p, gamma) for p in fs.params)
		return Signature(params, self._manifest(fs.result, gamma))

	###########################################################################
	# Declarations

	def _define_term(self, nom:Nom, binding:Binding):
		try: self._env.define_term(nom, binding)
		except AlreadyExists: self._report.redefined(nom.text, self._env.locate(nom.key()), nom)

	def _define_type(self, nom:Nom, entry) -> bool:
		try: self._env.define_type(nom, entry)
		except AlreadyExists:
			self._report.redefined(nom.text, self._env.locate(nom.key()), nom)
			return False
		return True

	def visit_Let(self, d:syntax.Let):
		synthesized = self.visit(d.expr)
		if d.type_expr is None:
			declared = synthesized
		else:
			declared = self._manifest(d.type_expr)
			if not self._narrow(d.expr, declared):
				declared = ERROR
		evidence = ERROR if declared is ERROR else self._evidence[d.expr]
		self._define_term(d.nom, Binding(declared, evidence, d))
		self._types[d] = declared
		self._report.info("   ", d.nom.text, ":", declared)

	def visit_TypeAlias(self, d:syntax.TypeAlias):
		if isinstance(d.body, syntax.OpaqueSpec) and d.body.label is None:
			d.body.label = d.nom.text
		self._define_type(d.nom, self._manifest(d.body))

	def visit_TypeFunction(self, d:syntax.TypeFunction):
		for p in d.params:
			bound = self._manifest(p.bound) if p.bound is not None else UNIVERSE
			# A plain (first-order) bound means the types it contains.
			p.meta = bound if bound is ERROR or _is_meta(bound) else MetaLift(bound)
		d.scope = self._env
		self._define_type(d.nom, d)

	def visit_Trait(self, d:syntax.Trait):
		ref = TraitRef(d)
		if not self._define_type(d.nom, ref): return
		functions, constants = {}, {}
		for fs in d.functions:
			if fs.nom.key() in functions: self._report.redefined(fs.nom.text, d.nom, fs.nom)
			else: functions[fs.nom.key()] = self._signature(fs, SELF)
		for cs in d.constants:
			if cs.nom.key() in constants or cs.nom.key() in functions:
				self._report.redefined(cs.nom.text, d.nom, cs.nom)
			else: constants[cs.nom.key()] = self._manifest(cs.type_expr, {"Self": SELF})
		self._registry.declare_trait(ref, Namespace(functions, constants))

	def visit_Associate(self, d:syntax.Associate):
		subject = self._manifest(d.subject)
		if subject is ERROR: return
		for fs in d.functions:
			sig = self._signature(fs, subject)
			try: self._registry.associate(subject, fs.nom.key(), sig, fs.nom)
			except AlreadyExists: self._report.redefined(fs.nom.text, self._registry.site_of(subject, fs.nom.key()) or fs.nom, fs.nom)
		for cs in d.constants:
			ctype = self._manifest(cs.type_expr, {"Self": subject})
			try: self._registry.associate_constant(subject, cs.nom.key(), ctype, cs.nom)
			except AlreadyExists: self._report.redefined(cs.nom.text, self._registry.site_of(subject, cs.nom.key()) or cs.nom, cs.nom)
		for claim in d.claims:
			trait = self._manifest(claim)
			if trait is not ERROR and not self._resolver.implements(subject, trait):
				self._report.unresolved_trait(claim, subject, trait, self._resolver.explain(subject, trait))

	###########################################################################
	# Value-expressions

	def _note(self, expr:Phrase, typ:DragonType, evidence:Optional[DragonType] = None) -> DragonType:
		typ = self._normalize(typ)
		self._types[expr] = typ
		self._evidence[expr] = typ if evidence is None else self._normalize(evidence)
		return typ

	def _oblige(self, site:Phrase, subject:DragonType, target:DragonType, status:str):
		self._obligations.append(Obligation(site, subject, self._normalize(target), status))

	def visit_Literal(self, expr:syntax.Literal):
		typ = primitive.type_of_value(expr.value)
		if typ is ERROR: raise TypeError(expr.value)
		return self._note(expr, typ)

	def visit_Lookup(self, expr:syntax.Lookup):
		binding = self._env.term(expr.ref.nom.key())
		if binding is None:
			self._report.undefined_name(expr.ref.nom)
			return self._note(expr, ERROR)
		return self._note(expr, binding.declared, binding.evidence)

	def visit_TupleExpr(self, expr:syntax.TupleExpr):
		fields = [self.visit(item) for item in expr.items]
		evidence = [self._evidence[item] for item in expr.items]
		return self._note(expr, product(fields), product(evidence))

	def visit_TypeValue(self, expr:syntax.TypeValue):
		typ = self._manifest(expr.type_expr)
		return self._note(expr, ERROR if typ is ERROR else type_of_type(typ))

	def visit_BinExp(self, expr:syntax.BinExp):
		return self._operate(expr, expr.op.text, primitive.BINARY.get(expr.op.text), [expr.lhs, expr.rhs])

	def visit_UnaryExp(self, expr:syntax.UnaryExp):
		return self._operate(expr, expr.op.text, primitive.UNARY.get(expr.op.text), [expr.operand])

	def visit_MethodCall(self, expr:syntax.MethodCall):
		self.visit(expr.receiver)
		for a in expr.args: self.visit(a)
		declared, evidence = self._types[expr.receiver], self._evidence[expr.receiver]
		if declared is ERROR: return self._note(expr, ERROR)
		name = expr.method.key()
		found = self._members(declared, name)
		if found is None and evidence != declared:
			found = self._members(evidence, name)
			if found is not None: self._oblige(expr, declared, evidence, PROVEN)
		if found is None:
			culprit = next(m for m in _disjuncts(evidence) if self._lookup_member(m, name) is None)
			self._report.missing_member(expr.method, culprit, name)
			return self._note(expr, ERROR)
		results = []
		for item in found:
			if isinstance(item, Signature):
				if len(item.params) != 1 + len(expr.args):
					self._report.type_mismatch(expr, item, "%d argument(s)"%(1+len(expr.args)))
					return self._note(expr, ERROR)
				for a, p in zip(expr.args, item.params[1:]):
					if not self._narrow(a, p): return self._note(expr, ERROR)
				results.append(item.result)
			else:
				if expr.args:
					self._report.type_mismatch(expr, item, "a call")
					return self._note(expr, ERROR)
				results.append(item)
		return self._note(expr, union(results))

	def _lookup_member(self, typ:DragonType, name:str):
		space = self._registry.namespace(typ)
		if name in space.functions: return space.functions[name]
		return space.constants.get(name)

	def _members(self, typ:DragonType, name:str) -> Optional[list]:
		""" Every disjunct must offer the member, or else there's no answer. """
		found = [self._lookup_member(m, name) for m in _disjuncts(typ)]
		return None if any(f is None for f in found) else found

	def visit_IsExpr(self, expr:syntax.IsExpr):
		self.visit(expr.subject)
		declared, evidence = self._types[expr.subject], self._evidence[expr.subject]
		target = self._manifest(expr.type_expr)
		if self._containment.subtype(evidence, target): status = PROVEN
		elif self._containment.disjoint(evidence, target): status = REFUTED
		else: status = DEFERRED
		self._oblige(expr, declared, target, status)
		return self._note(expr, primitive.BOOL)

	def visit_Coalesce(self, expr:syntax.Coalesce):
		self.visit(expr.subject)
		self.visit(expr.fallback)
		declared, evidence = self._types[expr.subject], self._evidence[expr.subject]
		present = negate(primitive.NONE)
		if self._containment.subtype(evidence, present): status = PROVEN
		elif self._containment.disjoint(evidence, present): status = REFUTED
		else: status = DEFERRED
		self._oblige(expr, declared, present, status)
		fallback, fallback_evidence = self._types[expr.fallback], self._evidence[expr.fallback]
		typ = union([intersect([declared, present]), fallback])
		return self._note(expr, typ, union([intersect([evidence, present]), fallback_evidence]))

	###########################################################################
	# Narrowing and overloads

	def _narrow(self, expr:syntax.ValueExpression, expected:DragonType) -> bool:
		""" Can the value of `expr` be used where `expected` is needed? """
		declared, evidence = self._types[expr], self._evidence[expr]
		subtype = self._containment.subtype
		if subtype(declared, expected): return True
		if subtype(evidence, expected):
			self._oblige(expr, declared, expected, PROVEN)
			return True
		if not self._containment.disjoint(evidence, expected) and subtype(expected, declared):
			self._oblige(expr, declared, expected, DEFERRED)
			return True
		if is_capability(expected):
			self._report.unresolved_trait(expr, declared, expected, self._resolver.explain(declared, expected))
		else:
			self._report.type_mismatch(expr, expected, declared)
		return False

	def _select(self, cases:Sequence[Signature], operands:Sequence[DragonType]) -> _Selection:
		"""
		Each combination of operand disjuncts needs exactly one applicable case.
		A case applies exactly if the operands are subtypes of its parameters,
		or possibly if they merely overlap.
		"""
		subtype, disjoint = self._containment.subtype, self._containment.disjoint
		results, chosen, status = [], [], OK
		for combo in cartesian(*map(_disjuncts, operands)):
			exact = [c for c in cases if all(subtype(a, p) for a, p in zip(combo, c.params))]
			if len(exact) > 1: return _Selection(_AMBIGUOUS, ERROR, tuple(exact), combo)
			if exact:
				results.append(exact[0].result)
				chosen.append(exact[0])
				continue
			overlap = [c for c in cases if not any(disjoint(a, p) for a, p in zip(combo, c.params))]
			if len(overlap) > 1: return _Selection(_AMBIGUOUS, ERROR, tuple(overlap), combo)
			if not overlap: return _Selection(_NO_CASE, ERROR, (), combo)
			results.append(overlap[0].result)
			chosen.append(overlap[0])
			status = DEFERRED
		return _Selection(status, union(results), tuple(chosen), ())

	def _operate(self, expr:syntax.ValueExpression, glyph:str, cases:Optional[Sequence[Signature]], operands:Sequence[syntax.ValueExpression]):
		declared = [self.visit(o) for o in operands]
		evidence = [self._evidence[o] for o in operands]
		if ERROR in declared: return self._note(expr, ERROR)
		if not cases:
			self._report.no_applicable_case(expr, glyph, declared)
			return self._note(expr, ERROR)
		selection = self._select(cases, declared)
		if selection.status not in (OK, DEFERRED) and evidence != declared:
			retry = self._select(cases, evidence)
			if retry.status == OK:
				self._oblige(expr, product(declared), product(evidence), PROVEN)
				selection = retry
		if selection.status == _AMBIGUOUS:
			self._report.ambiguous_overload(expr, glyph, selection.chosen)
			return self._note(expr, ERROR)
		if selection.status == _NO_CASE:
			self._report.no_applicable_case(expr, glyph, selection.culprit)
			return self._note(expr, ERROR)
		if selection.status == DEFERRED:
			target = union(product(c.params) for c in selection.chosen)
			self._oblige(expr, product(declared), target, DEFERRED)
		return self._note(expr, selection.result)
