"""
Traits, and the question of who implements them.

A trait is a named set of required associated functions and constants,
written in terms of the placeholder `Self`. A type implements a trait when
its associated-function namespace supplies a compatible match for every
requirement once `Self` becomes that type.

Negative questions ("does not implement") get decided under a closed world:
Whatever associations this compilation run has seen are all there are.
Each new declaration bumps the registry's generation, and every cache
keyed on trait facts includes the generation, so stale answers never resurface.
"""
from typing import NamedTuple, Optional
from .calculus import (
	DragonType, TraitRef, IntersectionType, NegationType, SumType,
	NEVER, ANY, ERROR, substitute,
)
from .environment import AlreadyExists
from .ontology import Phrase

class Signature(NamedTuple):
	params: tuple[DragonType, ...]
	result: DragonType
	def substitute(self, receiver:DragonType) -> "Signature":
		return Signature(tuple(substitute(p, receiver) for p in self.params), substitute(self.result, receiver))
	def __str__(self):
		return "(%s) -> %s"%(", ".join(map(str, self.params)), self.result)

class Namespace(NamedTuple):
	functions: dict[str, Signature]
	constants: dict[str, DragonType]

	def merge(self, other:"Namespace") -> "Namespace":
		""" First one in wins a conflict. """
		return Namespace({**other.functions, **self.functions}, {**other.constants, **self.constants})

def _empty() -> Namespace: return Namespace({}, {})

class Registry:
	"""
	The traits declared so far, and which types have which associated
	functions and constants. Associations are keyed by type-number,
	so callers should hand over normalized types.
	"""
	generation: int

	def __init__(self):
		self.generation = 0
		self._traits : dict[TraitRef, Namespace] = {}
		self._types : dict[int, DragonType] = {}
		self._spaces : dict[int, Namespace] = {}
		self._sites : dict[tuple[int, str], Optional[Phrase]] = {}

	def declare_trait(self, ref:TraitRef, requirements:Namespace):
		assert ref not in self._traits, ref
		self._traits[ref] = requirements
		self.generation += 1

	def requirements(self, ref:TraitRef) -> Namespace:
		return self._traits[ref]

	def declared(self, ref:TraitRef) -> bool:
		return ref in self._traits

	def _claim(self, typ:DragonType, name:str, site:Optional[Phrase]) -> Namespace:
		key = typ.number, name
		if key in self._sites:
			raise AlreadyExists(name)
		self._sites[key] = site
		self._types.setdefault(typ.number, typ)
		self.generation += 1
		return self._spaces.setdefault(typ.number, _empty())

	def associate(self, typ:DragonType, name:str, sig:Signature, site:Optional[Phrase] = None):
		self._claim(typ, name, site).functions[name] = sig

	def associate_constant(self, typ:DragonType, name:str, ctype:DragonType, site:Optional[Phrase] = None):
		self._claim(typ, name, site).constants[name] = ctype

	def site_of(self, typ:DragonType, name:str) -> Optional[Phrase]:
		return self._sites.get((typ.number, name))

	def namespace(self, typ:DragonType) -> Namespace:
		"""
		What may be called on a value of this type?
		For a trait, that's its requirements (with Self being the trait itself).
		For an intersection, it's everything any member offers.
		"""
		if isinstance(typ, TraitRef):
			need = self._traits.get(typ, _empty())
			return Namespace(
				{k: sig.substitute(typ) for k, sig in need.functions.items()},
				{k: substitute(c, typ) for k, c in need.constants.items()},
			)
		if isinstance(typ, IntersectionType):
			merged = _empty()
			for m in typ.members: merged = merged.merge(self.namespace(m))
			return merged
		return self._spaces.get(typ.number, _empty())

	def known_types(self) -> list[DragonType]:
		""" The closed world: every type this run has seen an association for. """
		return list(self._types.values())

class TraitResolver:
	"""
	Decides `implements(T, trait-expression)`. Signature compatibility
	needs subtyping, and subtyping against a trait needs this,
	so the two are mutually recursive. A question already being asked
	is assumed true (coinduction); answers which leaned on such an
	assumption are not memoized.
	"""
	def __init__(self, registry:Registry, containment):
		self.registry = registry
		self._containment = containment
		self._in_progress = set()
		self._memo = {}

	def assuming(self) -> bool:
		return bool(self._in_progress)

	def implements(self, typ:DragonType, trait:DragonType) -> bool:
		if isinstance(typ, SumType): return all(self.implements(m, trait) for m in typ.members)
		if isinstance(trait, TraitRef): return self._satisfies(typ, trait)
		if isinstance(trait, IntersectionType): return all(self.implements(typ, m) for m in trait.members)
		if isinstance(trait, SumType): return any(self.implements(typ, m) for m in trait.members)
		if isinstance(trait, NegationType): return not self.implements(typ, trait.inner)
		if trait is ANY: return True
		if trait is NEVER: return False
		return self._containment.subtype(typ, trait)

	def _satisfies(self, typ:DragonType, ref:TraitRef) -> bool:
		if typ is NEVER or typ is ERROR: return True
		if not self.registry.declared(ref): return False
		key = typ.number, ref.number, self.registry.generation
		if key in self._memo: return self._memo[key]
		if key in self._in_progress: return True
		self._in_progress.add(key)
		try: answer = not self.shortfall(typ, ref)
		finally: self._in_progress.discard(key)
		if not self._in_progress: self._memo[key] = answer
		return answer

	def shortfall(self, typ:DragonType, ref:TraitRef) -> list[str]:
		""" Names of the requirements `typ` does not (compatibly) supply. """
		need = self.registry.requirements(ref)
		have = self.registry.namespace(typ)
		subtype = self._containment.subtype
		missing = []
		for name, sig in need.functions.items():
			got = have.functions.get(name)
			if got is None or not self._compatible(got, sig.substitute(typ)):
				missing.append(name)
		for name, ctype in need.constants.items():
			got = have.constants.get(name)
			if got is None or not subtype(got, substitute(ctype, typ)):
				missing.append(name)
		return missing

	def _compatible(self, have:Signature, need:Signature) -> bool:
		# Covariant in the result; contravariant in the parameters.
		subtype = self._containment.subtype
		if len(have.params) != len(need.params): return False
		if not subtype(have.result, need.result): return False
		return all(subtype(n, h) for n, h in zip(need.params, have.params))

	def explain(self, typ:DragonType, trait:DragonType) -> list[str]:
		""" For diagnostics: which parts of a trait-expression fail, and why. """
		if isinstance(trait, TraitRef):
			if not self.registry.declared(trait): return [str(trait)]
			return ["%s.%s"%(trait, name) for name in self.shortfall(typ, trait)]
		if isinstance(trait, IntersectionType):
			return [x for m in trait.members for x in self.explain(typ, m)]
		if isinstance(trait, NegationType):
			return [str(trait)] if self.implements(typ, trait.inner) else []
		return [] if self.implements(typ, trait) else [str(trait)]
