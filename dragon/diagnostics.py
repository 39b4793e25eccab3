"""
Everything the type-checker has to say for itself goes through a Report.

Each complaint becomes a Diagnostic: a kind (with its code and severity),
an introductory sentence, and annotations that point into the source.
Report methods hand back the Diagnostic they record, so callers can
pass it along as the answer to a query that did not work out.
"""
import sys, random
from collections import Counter
from itertools import groupby
from functools import lru_cache
from pathlib import Path
from typing import Any, NamedTuple, Optional, Sequence
from boozetools.support.failureprone import SourceText, illustration

from .ontology import Phrase, Nom

class Kind(NamedTuple):
	name: str
	code: int
	severity: str
	def __str__(self): return "%s[%05d]"%(self.name, self.code)

TYPE_MISMATCH = Kind("TypeMismatch", 3001, "err")
UNRESOLVED_TRAIT = Kind("UnresolvedTrait", 3002, "err")
AMBIGUOUS_OVERLOAD = Kind("AmbiguousOverload", 3003, "err")
BUDGET_EXCEEDED = Kind("NormalizationBudgetExceeded", 3004, "err")
PARADOX_GUARD = Kind("ParadoxGuard", 3005, "fatal")
UNDEFINED_NAME = Kind("UndefinedName", 3006, "err")
REDEFINED = Kind("Redefined", 3007, "err")
WRONG_TYPE_ARITY = Kind("WrongTypeArity", 3008, "err")
MISSING_MEMBER = Kind("MissingMember", 3009, "err")

class TooManyIssues(Exception):
	pass

class NormalizationBudgetExceeded(Exception):
	""" Rewriting or type-level evaluation ran past its step (or depth) budget. """
	def __init__(self, phase:str, budget:int):
		super().__init__(phase, budget)
		self.phase, self.budget = phase, budget

class ParadoxGuard(Exception):
	"""
	A containment question came back around to itself through a meta-type.
	Only the universe may contain itself, and that's by axiom.
	Seeing this means the engine has a bug.
	"""
	def __init__(self, a, b):
		super().__init__(a, b)
		self.a, self.b = a, b

def _outburst():
	particle = ["Oh, ", "Well, ", "Hmm, ", "", ""]

	minced_oaths = [
		'Blast', 'Botheration', 'Confound it', 'Drat', 'Egad',
		'Fiddlesticks', 'Gadzooks', 'Great Scott', 'Heavens', 'Jeepers',
		'Nuts', 'Rats', 'Scales and Cinders', 'Smoke and Embers', 'Zounds',
	]

	resignations = [
		'The types refuse to line up.',
		'Somebody has to fix this.',
		'That does not add up.',
		'The dragon declines to proceed.',
	]

	return "%s%s! %s"%tuple(map(random.choice, (particle, minced_oaths, resignations)))

class Annotation:
	path: Optional[Path]
	slice: slice
	caption: str
	def __init__(self, node:Optional[Phrase], caption:str=""):
		if node is None:
			self.path, self.slice = None, slice(0, 0)
		else:
			span = node.where()
			self.path, self.slice = span.path, span.slice
		self.caption = caption
	def illustrate(self):
		if self.path is None:
			# Built-in or synthetic: there's no text to show.
			return "       | "+self.caption
		source = _fetch(self.path)
		row, col = source.find_row_col(self.slice.start)
		single_line = source.line_of_text(row)
		width = self.slice.stop - self.slice.start
		return illustration(single_line, col, width, prefix='% 6d |' % row, caption=self.caption)

class Diagnostic:
	def __init__(self, kind:Kind, intro:str, anns:list[Annotation], footer=()):
		self.kind = kind
		self.intro, self.annotations, self.footer = intro, anns, list(footer)
	@property
	def code(self): return self.kind.code
	@property
	def severity(self): return self.kind.severity
	def also(self, node, caption:str=""): self.annotations.append(Annotation(node, caption))
	def as_text(self):
		lines = ["%s %s: %s"%(self.kind.severity, self.kind, self.intro), ""]
		for path, group in groupby(self.annotations, key=lambda ann: ann.path):
			if path is not None: lines.append(str(path))
			lines.extend(ann.illustrate() for ann in group)
		lines.extend(self.footer)
		return '\n'.join(lines)
	def __repr__(self): return "<%s: %s>"%(self.kind, self.intro)

@lru_cache(5)
def _fetch(path) -> SourceText:
	with open(path, "r", encoding="utf-8") as fh:
		return SourceText(fh.read(), filename=str(path))

class Report:
	_issues : list[Diagnostic]

	def __init__(self, *, verbose:int=0, max_issues=30):
		self._verbose = verbose or 0   # Because None is incomparable.
		self._issues = []
		self._redefined = {}
		self._undefined = None
		self._max_issues = max_issues

	def ok(self): return not self._issues
	def sick(self): return bool(self._issues)
	def issues(self) -> list[Diagnostic]: return list(self._issues)
	def count(self) -> int: return len(self._issues)
	def since(self, mark:int) -> list[Diagnostic]: return self._issues[mark:]

	def issue(self, it:Diagnostic) -> Diagnostic:
		self._issues.append(it)
		if len(self._issues) == self._max_issues:
			raise TooManyIssues(self)
		return it

	def reset(self):
		self._issues.clear()
		self._redefined.clear()
		self._undefined = None

	def info(self, *args):
		if self._verbose:
			print(*args, file=sys.stderr)

	def complain_to_console(self):
		_bemoan(self._issues)

	def assert_no_issues(self, message):
		""" For the parts that must check cleanly, like the preamble. """
		if self._issues:
			self.complain_to_console()
			raise AssertionError("%s %s (%d diagnostic(s))"%(_outburst(), message, len(self._issues)))

	# Methods the name-resolution parts call:

	def redefined(self, text:str, first:Phrase, guilty:Phrase) -> Diagnostic:
		key = text, first
		if key not in self._redefined:
			intro = "The name '%s' is defined more than once in the same scope."%text
			self._redefined[key] = self.issue(Diagnostic(REDEFINED, intro, [Annotation(first, "Earliest definition")]))
		self._redefined[key].also(guilty)
		return self._redefined[key]

	def undefined_name(self, guilty:Nom) -> Diagnostic:
		assert isinstance(guilty, Phrase)
		if self._undefined is None:
			intro = "I don't see what this refers to."
			self._undefined = self.issue(Diagnostic(UNDEFINED_NAME, intro, []))
		self._undefined.also(guilty, guilty.text if isinstance(guilty, Nom) else "")
		return self._undefined

	def wrong_type_arity(self, site:Phrase, given:int, needed:int) -> Diagnostic:
		pattern = "%d type-arguments were given; %d are needed."
		return self.issue(Diagnostic(WRONG_TYPE_ARITY, pattern % (given, needed), [Annotation(site)]))

	# Methods the type-checker calls:

	def type_mismatch(self, site:Phrase, need, got, hint:str="") -> Diagnostic:
		intro = "Type-checking found %s where %s was expected."%(got, need)
		problem = [Annotation(site, "This %s needs to be a(n) %s."%(got, need))]
		return self.issue(Diagnostic(TYPE_MISMATCH, intro, problem, [hint] if hint else ()))

	def argument_rejected(self, site:Phrase, param:Nom, arg, meta) -> Diagnostic:
		intro = "Type-argument %s does not belong to %s, as '%s' requires."%(arg, meta, param.text)
		return self.issue(Diagnostic(TYPE_MISMATCH, intro, [Annotation(site)]))

	def unresolved_trait(self, site:Phrase, typ, trait, missing:Sequence[str]=()) -> Diagnostic:
		intro = "Type %s does not implement %s."%(typ, trait)
		footer = ["Missing or incompatible: "+", ".join(missing)] if missing else ()
		return self.issue(Diagnostic(UNRESOLVED_TRAIT, intro, [Annotation(site)], footer))

	def missing_member(self, site:Phrase, typ, name:str) -> Diagnostic:
		intro = "Type %s has no associated function called '%s'."%(typ, name)
		return self.issue(Diagnostic(MISSING_MEMBER, intro, [Annotation(site)]))

	def ambiguous_overload(self, site:Phrase, glyph:str, candidates:Sequence[Any]) -> Diagnostic:
		intro = "More than one case of '%s' might apply here, and I cannot tell which."%glyph
		footer = ["Candidates:"]
		footer.extend("    "+str(c) for c in candidates)
		return self.issue(Diagnostic(AMBIGUOUS_OVERLOAD, intro, [Annotation(site)], footer))

	def no_applicable_case(self, site:Phrase, glyph:str, actual_types:Sequence[Any]) -> Diagnostic:
		intro = "A type-directed operation goes off the rails."
		footer = [
			"The operator '%s' has no case for %s."%(glyph, ", ".join(map(str, actual_types))),
		]
		return self.issue(Diagnostic(TYPE_MISMATCH, intro, [Annotation(site)], footer))

	def budget_exceeded(self, site:Phrase, problem:NormalizationBudgetExceeded) -> Diagnostic:
		intro = "Type %s ran past its budget of %d steps."%(problem.phase, problem.budget)
		footer = ["Please consider simplifying this declaration's types."]
		return self.issue(Diagnostic(BUDGET_EXCEEDED, intro, [Annotation(site)], footer))

	def paradox_guard(self, site:Phrase, problem:ParadoxGuard) -> Diagnostic:
		intro = "The type-checker caught itself asking whether %s contains %s inside that same question."%(problem.b, problem.a)
		footer = ["This is a defect in the type-checker, not in your program."]
		return self.issue(Diagnostic(PARADOX_GUARD, intro, [Annotation(site)], footer))

def _bemoan(issues):
	""" Print the diagnostics, then a tally by severity. """
	if not issues: return
	print("*"*60, file=sys.stderr)
	print(_outburst(), file=sys.stderr)
	for d in issues:
		print("  -"*20, file=sys.stderr)
		print(d.as_text(), file=sys.stderr)
	tally = Counter(d.severity for d in issues)
	print("  -"*20, file=sys.stderr)
	print(", ".join("%d %s"%(n, sev) for sev, n in sorted(tally.items())), file=sys.stderr)
	sys.stderr.flush()
