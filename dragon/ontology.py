"""
Phrases, names, and where they come from.

The parser (which lives elsewhere) registers each source file with
`start_segment` and each token with `insert_token`. A phrase knows only
the indices of its leftmost and rightmost tokens; `Phrase.where()` turns
those into a path and a character slice for the diagnostics to print.
Token zero is the built-in location, where everything constructed
programmatically claims to live.

These classes sit apart from the syntax module to avoid circular imports:
types and environments need phrases, and syntax needs types.
"""
from bisect import bisect_right
from pathlib import Path
from typing import NamedTuple, Optional

class Span(NamedTuple):
	""" Aimed at whatever prints error messages """
	path: Optional[Path]
	slice: slice

class _Segment(NamedTuple):
	first: int   # Index of the first token from this file
	path: Optional[Path]

_tokens: list[slice] = []
_segments: list[_Segment] = []
_firsts: list[int] = []

def reset_location_index():
	_tokens.clear()
	_segments.clear()
	_firsts.clear()
	start_segment(None)
	insert_token(slice(0,0))

def start_segment(path:Optional[Path]):
	assert isinstance(path, Path) or path is None
	_segments.append(_Segment(len(_tokens), path))
	_firsts.append(len(_tokens))

def insert_token(s:slice) -> int:
	_tokens.append(s)
	return len(_tokens) - 1

def _path_of(index:int) -> Optional[Path]:
	return _segments[bisect_right(_firsts, index)-1].path

def lookup_span(first:int, last:int) -> Span:
	path = _path_of(first)
	assert path == _path_of(last), (first, last)
	return Span(path, slice(_tokens[first].start, _tokens[last].stop))

reset_location_index()

class Phrase:
	def left(self) -> int:
		""" Return the index of the leftmost token of this phrase """
		raise NotImplementedError(type(self))
	def right(self) -> int:
		""" Return the index of the rightmost token of this phrase """
		raise NotImplementedError(type(self))
	def where(self) -> Span: return lookup_span(self.left(), self.right())

class Nom(Phrase):
	""" Representing the occurrence of a name anywhere. """
	spot: int  # zero-spot means built-in or synthetic.
	def __init__(self, text, spot=None):
		assert isinstance(text, str)
		assert isinstance(spot, int) or spot is None, type(spot)
		self.text, self.spot = text, spot or 0
	def __repr__(self): return "<Name %r>" % self.text
	def key(self): return self.text
	def left(self): return self.spot
	def right(self): return self.spot

class Symbol(Phrase):
	"""
	Anything named and defined in some name-space:
	bindings, type aliases, type-functions, traits, and associated functions.
	"""
	nom: Nom

	def __init__(self, nom:Nom): self.nom = nom
	def __repr__(self): return "{%s:%s}" % (self.nom.text, type(self).__name__)
	def left(self): return self.nom.left()
	def right(self): return self.nom.right()

class TypeSymbol(Symbol): pass

class TermSymbol(Symbol): pass

class TypeExpression(Phrase): pass

class ValueExpression(Phrase): pass
