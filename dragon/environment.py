"""
Name-spaces for type-checking: one TypeEnvironment per module.

A module's environment fills up while that module is being checked,
and then it is finalized: From then on it is read-only, and other
modules may read it as a parent. Lookups search locally first,
then each parent in order.
"""
from typing import Generic, Iterable, NamedTuple, Optional, TypeVar, Union
from .ontology import Phrase, Nom
from .calculus import DragonType

class AlreadyExists(KeyError): pass
class Absent(KeyError): pass
class Frozen(Exception): pass

T = TypeVar("T")

class Layer(Generic[T]):
	""" Lightly enhanced dictionary: It does not like duplicate keys. """
	_locate: dict[str, Phrase]
	_entry: dict[str, T]

	def __init__(self):
		self._locate, self._entry = {}, {}

	def __contains__(self, key: str) -> bool:
		return key in self._entry

	def get(self, key: str) -> Optional[T]:
		return self._entry.get(key)

	def locate(self, key: str) -> Phrase:
		return self._locate[key]

	def mount(self, key:str, phrase:Phrase, entry:T) -> T:
		if key in self._locate:
			raise AlreadyExists(key)
		self._locate[key] = phrase
		self._entry[key] = entry
		return entry

	def keys(self) -> Iterable[str]:
		return self._entry.keys()

class Binding(NamedTuple):
	"""
	What the checker knows about a term:
	The declared type is the annotation (or, absent one, the synthesized type).
	The evidence is the type actually synthesized from the initializer.
	"""
	declared: DragonType
	evidence: DragonType
	site: Phrase

# A type-name refers either to a type, or else to a type-level function
# (which is a syntax.TypeFunction: this module stays free of syntax imports).
TypeEntry = Union[DragonType, object]

class TypeEnvironment:
	def __init__(self, name:str, parents:Iterable["TypeEnvironment"] = ()):
		self.name = name
		self.parents = tuple(parents)
		assert all(p.is_final for p in self.parents), "Only finalized environments may serve as parents."
		self.terms : Layer[Binding] = Layer()
		self.types : Layer[TypeEntry] = Layer()
		self._final = False

	def __repr__(self): return "<env %s>"%self.name

	@property
	def is_final(self) -> bool: return self._final

	def finalize(self) -> "TypeEnvironment":
		self._final = True
		return self

	def child(self, name:str) -> "TypeEnvironment":
		return TypeEnvironment(name, (self,))

	def _writable(self):
		if self._final: raise Frozen(self.name)

	def define_term(self, nom:Nom, binding:Binding) -> Binding:
		self._writable()
		return self.terms.mount(nom.key(), nom, binding)

	def define_type(self, nom:Nom, entry:TypeEntry) -> TypeEntry:
		self._writable()
		return self.types.mount(nom.key(), nom, entry)

	def term(self, key:str) -> Optional[Binding]:
		return self._search(key, "terms")

	def type_entry(self, key:str) -> Optional[TypeEntry]:
		return self._search(key, "types")

	def _search(self, key, which):
		layer = getattr(self, which)
		if key in layer: return layer.get(key)
		for p in self.parents:
			found = p._search(key, which)
			if found is not None: return found
		return None

	def locate(self, key:str) -> Phrase:
		""" Where was this name (term or type) first defined, searching outward? """
		for layer in self.terms, self.types:
			if key in layer: return layer.locate(key)
		for p in self.parents:
			try: return p.locate(key)
			except Absent: pass
		raise Absent(key)

	def term_names(self) -> list[str]:
		return list(self.terms.keys())

	def type_names(self) -> list[str]:
		return list(self.types.keys())
