"""
Build the primitive namespace.
Also, some bits used for operator syntax
and the primitive literal types.
"""
from typing import Any
from .ontology import Nom
from .calculus import (
	DragonType, Atomic, ANY, NEVER, UNIVERSE, ERROR,
	product, type_of_type,
)
from .environment import TypeEnvironment
from .traits import Signature

ROOT = TypeEnvironment("<root>")
built_in_type_names = []

def _built_in(name:str, typ:DragonType) -> DragonType:
	built_in_type_names.append(name)
	ROOT.define_type(Nom(name), typ)
	return typ

NONE = _built_in("none", Atomic("none"))
BOOL = _built_in("bool", Atomic("bool"))
INT = _built_in("int", Atomic("int"))
FLOAT = _built_in("float", Atomic("float"))
STR = _built_in("str", Atomic("str"))
SYM = _built_in("sym", Atomic("sym"))
_built_in("any", ANY)
_built_in("never", NEVER)
_built_in("type", UNIVERSE)
ROOT.finalize()

ATOMS = (NONE, BOOL, INT, FLOAT, STR, SYM)

class Sym(str):
	""" An interned symbolic constant. The parser makes these; they're only ever equal to themselves. """
	def __repr__(self): return ":"+self

literal_type_map = {
	type(None): NONE,
	bool: BOOL,
	int: INT,
	float: FLOAT,
	str: STR,
	Sym: SYM,
}

def type_of_value(value:Any) -> DragonType:
	""" The narrowest type describing how this value was constructed. """
	if isinstance(value, tuple):
		return product(type_of_value(v) for v in value)
	if isinstance(value, DragonType):
		return type_of_type(value)
	# NB: exact type, because bool is a subclass of int and Sym of str.
	return literal_type_map.get(type(value), ERROR)

def _sig(*params:DragonType, result:DragonType) -> Signature:
	return Signature(params, result)

_NUMBERS = (INT, FLOAT)
_ORDERED = (INT, FLOAT, STR)

BINARY : dict[str, list[Signature]] = {}
UNARY : dict[str, list[Signature]] = {}

for _glyph in ("**", "*", "/", "%", "+", "-"):
	BINARY[_glyph] = [_sig(t, t, result=t) for t in _NUMBERS]
BINARY["+"].append(_sig(STR, STR, result=STR))
for _glyph in ("<", "<=", ">", ">="):
	BINARY[_glyph] = [_sig(t, t, result=BOOL) for t in _ORDERED]
for _glyph in ("==", "!="):
	BINARY[_glyph] = [_sig(t, t, result=BOOL) for t in ATOMS]
for _glyph in ("and", "or", "xor"):
	BINARY[_glyph] = [_sig(BOOL, BOOL, result=BOOL)]

UNARY["-"] = [_sig(t, result=t) for t in _NUMBERS]
UNARY["not"] = [_sig(BOOL, result=BOOL)]
