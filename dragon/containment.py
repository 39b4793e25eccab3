"""
The subtype and membership decision procedure.

Both sides get normalized first, so every question arrives in canonical
form and the procedure can be structural: sums split on the left,
intersections split on the right, negations turn into disjointness,
and whatever is left is a literal comparison.

Membership is subtyping of the value's narrowest type, with one exception:
The universe of types contains itself. That is an axiom, checked up front,
and never derived. Any other containment question that comes back around
to itself through a meta-type raises ParadoxGuard, because that would mean
the engine itself has gone wrong.
"""
from .calculus import (
	DragonType, Atomic, SumType, ProductType, IntersectionType, NegationType,
	OpaqueType, TraitRef, MetaLift, NEVER, ANY, UNIVERSE, ERROR, intersect, negate,
)
from .normalizer import Normalizer, clash
from .traits import Registry, TraitResolver
from .diagnostics import ParadoxGuard

def _is_meta(t:DragonType) -> bool:
	return t is UNIVERSE or isinstance(t, MetaLift)

class Containment:
	depth: int     # Current nesting of decisions in flight.
	deepest: int   # High-water mark of `depth` since the last top-level question.

	def __init__(self, normalizer:Normalizer, registry:Registry):
		self.normalizer = normalizer
		self.registry = registry
		self.resolver = TraitResolver(registry, self)
		self._memo = {}
		self._active = set()
		self.depth = 0
		self.deepest = 0

	def subtype(self, a:DragonType, b:DragonType) -> bool:
		normalize = self.normalizer.normalize
		return self._check(normalize(a), normalize(b))

	def member(self, value_type:DragonType, b:DragonType) -> bool:
		if value_type is UNIVERSE and b is UNIVERSE:
			if not self.depth: self.deepest = 1
			return True
		return self.subtype(value_type, b)

	def disjoint(self, a:DragonType, b:DragonType) -> bool:
		normalize = self.normalizer.normalize
		if not self.depth: self.deepest = 0
		return self._disjoint(normalize(a), normalize(b))

	def _check(self, a:DragonType, b:DragonType) -> bool:
		top = not self.depth
		if top: self.deepest = 0
		key = a.number, b.number, self.registry.generation
		if key in self._memo: return self._memo[key]
		self.depth += 1
		self.deepest = max(self.deepest, self.depth)
		try: answer = self._decide(a, b)
		finally: self.depth -= 1
		if top and not self.resolver.assuming():
			self._memo.setdefault(key, answer)
		return answer

	def _decide(self, a:DragonType, b:DragonType) -> bool:
		if a == b or a is NEVER or b is ANY: return True
		# The error type agrees with everything, so one mistake is one complaint.
		if a is ERROR or b is ERROR: return True
		if isinstance(a, SumType):
			return all(self._check(m, b) for m in a.members)
		if isinstance(b, IntersectionType):
			return all(self._check(a, m) for m in b.members)
		if isinstance(a, IntersectionType):
			if any(self._check(m, b) for m in a.members): return True
			if isinstance(b, SumType): return any(self._check(a, m) for m in b.members) or self._vacant(a, b)
			if isinstance(b, NegationType): return self._disjoint(a, b.inner) or self._vacant(a, b)
			# Together the members may offer what none offers alone.
			if isinstance(b, TraitRef) and self.resolver.implements(a, b): return True
			return self._vacant(a, b)
		if isinstance(b, SumType):
			return any(self._check(a, m) for m in b.members) or self._vacant(a, b)
		if isinstance(b, NegationType):
			return self._disjoint(a, b.inner)
		if isinstance(a, NegationType):
			return self._vacant(a, b)
		return self._guarded(a, b)

	def _vacant(self, a:DragonType, b:DragonType) -> bool:
		"""
		The structural rules above are complete only for literals on the left.
		Otherwise, fall back on the definition: `a <: b` exactly when
		`a & !b` is empty. The normal form of that is a sum of conjunctions
		of literals, and each conjunction gets judged on its own.
		"""
		residue = self.normalizer.normalize(intersect([a, negate(b)]))
		conjuncts = residue.members if isinstance(residue, SumType) else (residue,)
		return all(self._empty(c) for c in conjuncts)

	def _empty(self, c:DragonType) -> bool:
		if c is NEVER or c is ERROR: return True
		literals = c.members if isinstance(c, IntersectionType) else (c,)
		positives = [x for x in literals if not isinstance(x, NegationType)]
		excluded = [x.inner for x in literals if isinstance(x, NegationType)]
		if not positives: return False  # Nothing pins it down; `any` reaches past every literal.
		for p in positives:
			if isinstance(p, (Atomic, OpaqueType)):
				# A nominal type lies wholly inside, or wholly outside, every other literal.
				others = [q for q in positives if q is not p]
				return any(not self._check(p, q) for q in others) or any(self._check(p, n) for n in excluded)
		if all(isinstance(p, TraitRef) for p in positives):
			return self._closed_world(positives, excluded)
		return any(self._check(p, n) for p in positives for n in excluded)

	def _closed_world(self, traits:list, excluded:list) -> bool:
		""" Empty when every known type that does all the traits is also excluded. """
		registry, implements = self.registry, self.resolver.implements
		for ref in traits:
			if not registry.declared(ref): return True
			need = registry.requirements(ref)
			# Types nobody has heard of yet still do a trait with no requirements.
			if not (need.functions or need.constants): return False
		for t in registry.known_types():
			if all(implements(t, ref) for ref in traits):
				if not isinstance(t, (Atomic, OpaqueType, ProductType)): return False
				if not any(self._check(t, n) for n in excluded): return False
		return True

	def _guarded(self, a:DragonType, b:DragonType) -> bool:
		if not (_is_meta(a) or _is_meta(b)):
			return self._literal(a, b)
		pair = a.number, b.number
		if pair in self._active:
			raise ParadoxGuard(a, b)
		self._active.add(pair)
		try: return self._literal(a, b)
		finally: self._active.discard(pair)

	def _literal(self, a:DragonType, b:DragonType) -> bool:
		if isinstance(b, TraitRef):
			return self.resolver.implements(a, b)
		if b is UNIVERSE:
			return isinstance(a, MetaLift)
		if isinstance(b, MetaLift):
			return isinstance(a, MetaLift) and self._check(a.predicate, b.predicate)
		if isinstance(a, ProductType) and isinstance(b, ProductType):
			return len(a.fields) == len(b.fields) and all(self._check(x, y) for x, y in zip(a.fields, b.fields))
		# Opaque types land here too: only their own identity contains them.
		return False

	def _disjoint(self, a:DragonType, b:DragonType) -> bool:
		if a is NEVER or b is NEVER: return True
		if a is ERROR or b is ERROR: return False
		if a is ANY or b is ANY: return False
		if isinstance(a, SumType): return all(self._disjoint(m, b) for m in a.members)
		if isinstance(b, SumType): return all(self._disjoint(a, m) for m in b.members)
		if isinstance(a, NegationType): return self._check(b, a.inner)
		if isinstance(b, NegationType): return self._check(a, b.inner)
		if isinstance(a, IntersectionType): return any(self._disjoint(m, b) for m in a.members)
		if isinstance(b, IntersectionType): return any(self._disjoint(a, m) for m in b.members)
		implements = self.resolver.implements
		if isinstance(a, TraitRef) and isinstance(b, TraitRef):
			# Closed world: no known type does both.
			return not any(implements(t, a) and implements(t, b) for t in self.registry.known_types())
		if isinstance(a, TraitRef): return not implements(b, a)
		if isinstance(b, TraitRef): return not implements(a, b)
		if isinstance(a, ProductType) and isinstance(b, ProductType) and len(a.fields) == len(b.fields):
			return any(self._disjoint(x, y) for x, y in zip(a.fields, b.fields))
		return clash(a, b)
