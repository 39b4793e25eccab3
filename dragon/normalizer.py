"""
Rewrite types toward a canonical form, which then compares by type-number.

The rules are the usual suspects: drop the identities, absorb the zeros,
push negation inward (De Morgan), cancel double negation, spot complements,
and distribute products and intersections over sums.

Distribution can blow up exponentially, and deeply nested terms can blow
the stack. Both are bounded: Every rule application costs a step,
and the recursion has a depth limit. Running past either raises
NormalizationBudgetExceeded instead of hanging.
"""
from itertools import combinations
from .calculus import (
	TypeVisitor, DragonType, Atomic, SumType, ProductType, IntersectionType,
	NegationType, OpaqueType, TraitRef, MetaLift,
	NEVER, ANY, UNIVERSE, ERROR, SELF,
	union, intersect, product, negate,
)
from .diagnostics import NormalizationBudgetExceeded

_VALUE_KINDS = (Atomic, ProductType, OpaqueType)

def _is_meta(t:DragonType) -> bool:
	return t is UNIVERSE or isinstance(t, MetaLift)

def _flip(t:DragonType) -> DragonType:
	return t.inner if isinstance(t, NegationType) else negate(t)

def clash(a:DragonType, b:DragonType) -> bool:
	"""
	True when two positive literals can be seen to share no values
	from their shapes alone: different atoms, different opaque identities,
	products of different length, or a value-type against a meta-type.
	"""
	if a == b: return False
	if isinstance(a, _VALUE_KINDS) and _is_meta(b): return True
	if isinstance(b, _VALUE_KINDS) and _is_meta(a): return True
	if isinstance(a, _VALUE_KINDS) and isinstance(b, _VALUE_KINDS):
		if type(a) is not type(b): return True
		if isinstance(a, ProductType): return len(a.fields) != len(b.fields)
		return True
	return False

class Normalizer(TypeVisitor):
	steps: int

	def __init__(self, budget:int=10000, max_depth:int=100):
		self.budget = budget
		self.max_depth = max_depth
		self._cache = {}  # type-number -> (normal form, height, steps it cost)
		self.steps = 0
		self._depth = 0
		self._reach = 0

	def normalize(self, t:DragonType) -> DragonType:
		""" Run passes until nothing changes. A normal form maps to itself. """
		self.steps, self._depth, self._reach = 0, 0, 0
		while True:
			out = self._norm(t)
			if out == t: return out
			t = out

	def _norm(self, t:DragonType) -> DragonType:
		# A cache hit pays the same depth and steps its entry first cost.
		limit = min(self.budget, self.max_depth)
		if t.number in self._cache:
			out, height, cost = self._cache[t.number]
			if self._depth + height > limit:
				raise NormalizationBudgetExceeded("normalization", limit)
			self._reach = max(self._reach, self._depth + height)
			self._charge(cost)
			return out
		if self._depth >= limit:
			raise NormalizationBudgetExceeded("normalization", limit)
		outer, before = self._reach, self.steps
		self._depth += 1
		self._reach = self._depth
		try: out = t.visit(self)
		finally: self._depth -= 1
		height = self._reach - self._depth
		self._reach = max(outer, self._reach)
		self._cache.setdefault(t.number, (out, height, self.steps - before))
		return out

	def _charge(self, cost:int):
		self.steps += cost
		if self.steps > self.budget:
			raise NormalizationBudgetExceeded("normalization", self.budget)

	def _step(self): self._charge(1)

	def on_atomic(self, a: Atomic): return a
	def on_opaque(self, o: OpaqueType): return o
	def on_trait(self, t: TraitRef): return t
	def on_never(self): return NEVER
	def on_any(self): return ANY
	def on_universe(self): return UNIVERSE
	def on_error_type(self): return ERROR
	def on_placeholder(self): return SELF

	def on_meta(self, m: MetaLift):
		predicate = self._norm(m.predicate)
		if predicate is ERROR: return ERROR
		return MetaLift(predicate)

	def on_product(self, p: ProductType):
		fields = [self._norm(f) for f in p.fields]
		if ERROR in fields: return ERROR
		if NEVER in fields:
			self._step()
			return NEVER
		for idx, f in enumerate(fields):
			if isinstance(f, SumType):
				self._step()
				before, after = fields[:idx], fields[idx+1:]
				return self._norm(union(product(before+[d]+after) for d in f.members))
		return product(fields)

	def on_sum(self, s: SumType):
		it = union(self._norm(m) for m in s.members)
		if not isinstance(it, SumType): return it
		members = it.members
		if ERROR in members: return ERROR
		if ANY in members:
			self._step()
			return ANY
		if NEVER in members:
			self._step()
			return self._norm(union(m for m in members if m is not NEVER))
		numbers = set(m.number for m in members)
		for m in members:
			if isinstance(m, NegationType) and m.inner.number in numbers:
				self._step()
				return ANY
		# Absorption: A | (A & B) is just A.
		keep = [
			m for m in members
			if not (isinstance(m, IntersectionType) and any(x.number in numbers for x in m.members))
		]
		if len(keep) < len(members):
			self._step()
			return self._norm(union(keep))
		if self._exhaustive(members):
			self._step()
			return ANY
		return it

	def _exhaustive(self, members:tuple[DragonType, ...]) -> bool:
		"""
		Does this sum cover everything? Exactly when the complements of its
		members have nothing in common. Each member is a conjunction of literals,
		so its complement is a choice among the flipped literals. Search the
		choices for a consistent meet; finding none means the sum is `any`.
		"""
		clauses = [
			[_flip(x) for x in (m.members if isinstance(m, IntersectionType) else (m,))]
			for m in members
		]
		return not self._consistent(ANY, clauses)

	def _consistent(self, meet:DragonType, clauses:list) -> bool:
		if not clauses: return True
		for literal in clauses[0]:
			narrower = literal if meet is ANY else self._norm(intersect([meet, literal]))
			if narrower is NEVER: self._step()
			elif self._consistent(narrower, clauses[1:]): return True
		return False

	def on_intersection(self, i: IntersectionType):
		it = intersect(self._norm(m) for m in i.members)
		if not isinstance(it, IntersectionType): return it
		members = it.members
		if ERROR in members: return ERROR
		if NEVER in members:
			self._step()
			return NEVER
		if ANY in members:
			self._step()
			return self._norm(intersect(m for m in members if m is not ANY))
		for idx, m in enumerate(members):
			if isinstance(m, SumType):
				self._step()
				others = list(members[:idx]+members[idx+1:])
				return self._norm(union(intersect(others+[d]) for d in m.members))
		return self._meet(members)

	def _meet(self, members:tuple[DragonType, ...]) -> DragonType:
		""" The intersection-specific rules, on flat members free of sums. """
		positives = [m for m in members if not isinstance(m, NegationType)]
		numbers = set(m.number for m in positives)
		for m in members:
			if isinstance(m, NegationType) and m.inner.number in numbers:
				self._step()
				return NEVER
		for a, b in combinations(positives, 2):
			if clash(a, b):
				self._step()
				return NEVER
		products = [p for p in positives if isinstance(p, ProductType)]
		if len(products) > 1:
			# They all have the same length by now, or else they'd clash.
			self._step()
			merged = product(intersect(column) for column in zip(*(p.fields for p in products)))
			rest = [m for m in members if not isinstance(m, ProductType)]
			return self._norm(intersect(rest+[merged]))
		metas = [m for m in positives if isinstance(m, MetaLift)]
		if len(metas) > 1:
			self._step()
			merged = MetaLift(intersect(m.predicate for m in metas))
			rest = [m for m in members if not isinstance(m, MetaLift)]
			return self._norm(intersect(rest+[merged]))
		if metas and UNIVERSE in positives:
			self._step()
			return self._norm(intersect(m for m in members if m is not UNIVERSE))
		# A positive literal makes any negation it clashes with redundant.
		keep = [
			m for m in members
			if not (isinstance(m, NegationType) and any(clash(p, m.inner) for p in positives))
		]
		if len(keep) < len(members):
			self._step()
			return self._norm(intersect(keep))
		return intersect(members)

	def on_negation(self, n: NegationType):
		inner = self._norm(n.inner)
		if inner is ERROR: return ERROR
		if isinstance(inner, NegationType):
			self._step()
			return inner.inner
		if isinstance(inner, SumType):
			self._step()
			return self._norm(intersect(negate(m) for m in inner.members))
		if isinstance(inner, IntersectionType):
			self._step()
			return self._norm(union(negate(m) for m in inner.members))
		if inner is ANY:
			self._step()
			return NEVER
		if inner is NEVER:
			self._step()
			return ANY
		return negate(inner)
