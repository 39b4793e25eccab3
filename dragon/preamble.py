"""
The built-in traits, and the associations by which the atoms satisfy them.
There is no parser in here, so the preamble module is built directly as syntax.
Each engine checks it first, and every user module sees its environment.
"""
from . import syntax
from .ontology import Nom

def _t(name:str) -> syntax.TypeCall:
	return syntax.TypeCall(syntax.Reference(Nom(name)))

def _fn(name:str, params, result) -> syntax.FunctionSpec:
	return syntax.FunctionSpec(Nom(name), [_t(p) for p in params], _t(result))

def _const(name:str, typ:str) -> syntax.ConstantSpec:
	return syntax.ConstantSpec(Nom(name), _t(typ))

NUM = syntax.Trait(
	Nom("Num"),
	[_fn("add", ["Self", "Self"], "Self"), _fn("neg", ["Self"], "Self")],
	[_const("zero", "Self")],
)
EQ = syntax.Trait(Nom("Eq"), [_fn("eq", ["Self", "Self"], "bool")])
SHOW = syntax.Trait(Nom("Show"), [_fn("show", ["Self"], "str")])

def _numeric(atom:str) -> syntax.Associate:
	return syntax.Associate(
		_t(atom),
		[
			_fn("add", [atom, atom], atom),
			_fn("neg", [atom], atom),
			_fn("eq", [atom, atom], "bool"),
			_fn("show", [atom], "str"),
		],
		[_const("zero", atom)],
		[_t("Num"), _t("Eq"), _t("Show")],
	)

def _plain(atom:str, eq=True) -> syntax.Associate:
	functions = [_fn("show", [atom], "str")]
	claims = [_t("Show")]
	if eq:
		functions.append(_fn("eq", [atom, atom], "bool"))
		claims.append(_t("Eq"))
	return syntax.Associate(_t(atom), functions, (), claims)

SYM = syntax.Associate(_t("sym"), [_fn("eq", ["sym", "sym"], "bool")], (), [_t("Eq")])

PREAMBLE = syntax.Module("<preamble>", [
	NUM, EQ, SHOW,
	_numeric("int"),
	_numeric("float"),
	_plain("str"),
	_plain("bool"),
	_plain("none", eq=False),
	SYM,
])
