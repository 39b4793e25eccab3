"""
These bits represent the data over which the type-checker operates:
Types are sets of values, and this module is the algebra of those sets.

Every type is a value-object, numbered by an equivalence classifier.
Equal numbers mean equal types, which means equality and hashing go fast
and the number itself serves as a fingerprint for caches.

Constructors here take care of the cheap structural laws:
Sums and intersections come out flat, deduplicated, and in a stable order.
Products come out flat, because they associate (but never commute).
Everything cleverer than that is the normalizer's job.
"""
from typing import Iterable, Optional
from boozetools.support.foundation import EquivalenceClassifier

_type_numbering_subsystem = EquivalenceClassifier()

class DragonType:
	"""Value objects so they can play well with the classifier"""
	def visit(self, visitor:"TypeVisitor"): raise NotImplementedError(type(self))

	def __init__(self, *key):
		self._key = key
		self._hash = hash(key)
		self.number = _type_numbering_subsystem.classify(self)
	def __hash__(self): return self._hash
	def __eq__(self, other: "DragonType"): return type(self) is type(other) and self._key == other._key
	def exemplar(self) -> "DragonType": return _type_numbering_subsystem.exemplars[self.number]
	def __repr__(self) -> str:
		it = self.visit(Render())
		assert isinstance(it, str), (it, type(self))
		return it

class Atomic(DragonType):
	""" A built-in primitive set of values, like int or str. """
	def __init__(self, name:str):
		self.name = name
		super().__init__(name)
	def visit(self, visitor:"TypeVisitor"): return visitor.on_atomic(self)

def _gather(kind, members:Iterable[DragonType]) -> tuple[DragonType, ...]:
	seen = {}
	for m in members:
		assert isinstance(m, DragonType), m
		for x in (m.members if isinstance(m, kind) else (m,)):
			seen.setdefault(x.number, x.exemplar())
	return tuple(seen[k] for k in sorted(seen))

class SumType(DragonType):
	""" Union of member sets. Transparent: no tag tells which member a value came from. """
	def __init__(self, members:Iterable[DragonType]):
		self.members = _gather(SumType, members)
		assert len(self.members) > 1, "Use the union() factory for degenerate sums."
		super().__init__(frozenset(m.number for m in self.members))
	def visit(self, visitor:"TypeVisitor"): return visitor.on_sum(self)

class IntersectionType(DragonType):
	def __init__(self, members:Iterable[DragonType]):
		self.members = _gather(IntersectionType, members)
		assert len(self.members) > 1, "Use the intersect() factory for degenerate intersections."
		super().__init__(frozenset(m.number for m in self.members))
	def visit(self, visitor:"TypeVisitor"): return visitor.on_intersection(self)

class ProductType(DragonType):
	def __init__(self, fields:Iterable[DragonType]):
		flat = []
		for f in fields:
			if isinstance(f, ProductType): flat.extend(f.fields)
			else: flat.append(f.exemplar())
		assert len(flat) != 1, "Use the product() factory for degenerate products."
		self.fields = tuple(flat)
		super().__init__(*(f.number for f in self.fields))
	def visit(self, visitor:"TypeVisitor"): return visitor.on_product(self)

class NegationType(DragonType):
	""" Everything except the inner type, relative to the universe of values. """
	def __init__(self, inner:DragonType):
		self.inner = inner.exemplar()
		super().__init__(self.inner.number)
	def visit(self, visitor:"TypeVisitor"): return visitor.on_negation(self)

class OpaqueType(DragonType):
	"""
	A nominal wrapper. The identity is whatever marks the declaration site,
	and it alone makes the key. The inner type never participates,
	so structurally-identical wrappers from different sites stay distinct.
	"""
	def __init__(self, identity, inner:DragonType, label:Optional[str] = None):
		self.identity = identity
		self.inner = inner.exemplar()
		self.label = label
		super().__init__(identity)
	def visit(self, visitor:"TypeVisitor"): return visitor.on_opaque(self)

class TraitRef(DragonType):
	""" The set of types which supply what some trait requires. """
	def __init__(self, symbol):
		self.symbol = symbol
		super().__init__(symbol)
	def visit(self, visitor:"TypeVisitor"): return visitor.on_trait(self)

class MetaLift(DragonType):
	""" {P}: a meta-type, whose members are the first-order types contained in P. """
	def __init__(self, predicate:DragonType):
		self.predicate = predicate.exemplar()
		super().__init__(self.predicate.number)
	def visit(self, visitor:"TypeVisitor"): return visitor.on_meta(self)

class _Never(DragonType):
	""" The empty set. Nothing inhabits it. """
	def visit(self, visitor:"TypeVisitor"): return visitor.on_never()

class _Any(DragonType):
	""" The universe of values, against which negation is relative. """
	def visit(self, visitor:"TypeVisitor"): return visitor.on_any()

class _Universe(DragonType):
	"""
	The meta-type of all types, including itself.
	That last bit holds by axiom only, never by structural recursion.
	"""
	def visit(self, visitor:"TypeVisitor"): return visitor.on_universe()

class _Error(DragonType):
	"""
	The type of things that make no sense or otherwise do not compute.
	It stands in for whatever was wrong, so one mistake yields one complaint.
	"""
	def visit(self, visitor:"TypeVisitor"): return visitor.on_error_type()

class _Placeholder(DragonType):
	""" The receiver type in trait requirements, written `Self`. """
	def visit(self, visitor:"TypeVisitor"): return visitor.on_placeholder()

NEVER = _Never(None)
ANY = _Any(None)
UNIVERSE = _Universe(None)
ERROR = _Error(None)
SELF = _Placeholder(None)
EMPTY_PRODUCT = ProductType(())

def union(members:Iterable[DragonType]) -> DragonType:
	members = _gather(SumType, members)
	if not members: return NEVER
	if len(members) == 1: return members[0]
	return SumType(members)

def intersect(members:Iterable[DragonType]) -> DragonType:
	members = _gather(IntersectionType, members)
	if not members: return ANY
	if len(members) == 1: return members[0]
	return IntersectionType(members)

def product(fields:Iterable[DragonType]) -> DragonType:
	flat = []
	for f in fields:
		if isinstance(f, ProductType): flat.extend(f.fields)
		else: flat.append(f)
	if len(flat) == 1: return flat[0]
	return ProductType(flat)

def negate(inner:DragonType) -> DragonType:
	return NegationType(inner)

def type_of_type(t:DragonType) -> DragonType:
	""" The narrowest meta-type having `t` as a member. """
	return UNIVERSE if t is UNIVERSE else MetaLift(t)

def is_capability(t:DragonType) -> bool:
	""" Is this an expression in the algebra of traits? """
	if isinstance(t, TraitRef): return True
	if isinstance(t, NegationType): return is_capability(t.inner)
	if isinstance(t, MetaLift): return is_capability(t.predicate)
	if isinstance(t, IntersectionType): return any(is_capability(m) for m in t.members)
	if isinstance(t, SumType): return all(is_capability(m) for m in t.members)
	return False

###################
#

class TypeVisitor:
	def on_atomic(self, a:Atomic): raise NotImplementedError(type(self))
	def on_sum(self, s:SumType): raise NotImplementedError(type(self))
	def on_product(self, p:ProductType): raise NotImplementedError(type(self))
	def on_intersection(self, i:IntersectionType): raise NotImplementedError(type(self))
	def on_negation(self, n:NegationType): raise NotImplementedError(type(self))
	def on_opaque(self, o:OpaqueType): raise NotImplementedError(type(self))
	def on_trait(self, t:TraitRef): raise NotImplementedError(type(self))
	def on_meta(self, m:MetaLift): raise NotImplementedError(type(self))
	def on_never(self): raise NotImplementedError(type(self))
	def on_any(self): raise NotImplementedError(type(self))
	def on_universe(self): raise NotImplementedError(type(self))
	def on_error_type(self): raise NotImplementedError(type(self))
	def on_placeholder(self): raise NotImplementedError(type(self))

class Render(TypeVisitor):
	""" Return a string representation of the term. """
	def on_atomic(self, a: Atomic):
		return a.name
	def on_sum(self, s: SumType):
		return " | ".join(sorted(m.visit(self) for m in s.members))
	def on_product(self, p: ProductType):
		return "(%s)"%(", ".join(f.visit(self) for f in p.fields))
	def on_intersection(self, i: IntersectionType):
		return " & ".join(sorted(self._tight(m) for m in i.members))
	def on_negation(self, n: NegationType):
		return "!"+self._tight(n.inner)
	def _tight(self, t: DragonType):
		text = t.visit(self)
		return "(%s)"%text if isinstance(t, (SumType, IntersectionType)) else text
	def on_opaque(self, o: OpaqueType):
		return o.label or "type(%s)"%o.inner.visit(self)
	def on_trait(self, t: TraitRef):
		return t.symbol.nom.text
	def on_meta(self, m: MetaLift):
		return "{%s}"%m.predicate.visit(self)
	def on_never(self): return "never"
	def on_any(self): return "any"
	def on_universe(self): return "type"
	def on_error_type(self): return "-/error/-"
	def on_placeholder(self): return "Self"

class Rewriter(TypeVisitor):
	"""
	Rebuild a term bottom-up through the smart constructors.
	Subclasses override whichever cases they mean to change.
	Opaque types are left alone: their inner type belongs to their declaration.
	"""
	def on_atomic(self, a: Atomic): return a
	def on_sum(self, s: SumType): return union(m.visit(self) for m in s.members)
	def on_product(self, p: ProductType): return product(f.visit(self) for f in p.fields)
	def on_intersection(self, i: IntersectionType): return intersect(m.visit(self) for m in i.members)
	def on_negation(self, n: NegationType): return negate(n.inner.visit(self))
	def on_opaque(self, o: OpaqueType): return o
	def on_trait(self, t: TraitRef): return t
	def on_meta(self, m: MetaLift): return MetaLift(m.predicate.visit(self))
	def on_never(self): return NEVER
	def on_any(self): return ANY
	def on_universe(self): return UNIVERSE
	def on_error_type(self): return ERROR
	def on_placeholder(self): return SELF

class _SelfSubstitution(Rewriter):
	def __init__(self, receiver: DragonType):
		self._receiver = receiver
	def on_placeholder(self): return self._receiver

def substitute(t:DragonType, receiver:DragonType) -> DragonType:
	""" Replace `Self` with the receiver type throughout. """
	return t.visit(_SelfSubstitution(receiver))
