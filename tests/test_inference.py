import unittest

from dragon import syntax
from dragon.calculus import NegationType, ANY, ERROR, union, intersect, product, negate
from dragon.diagnostics import (
	Diagnostic, TYPE_MISMATCH, UNRESOLVED_TRAIT, AMBIGUOUS_OVERLOAD, BUDGET_EXCEEDED,
	UNDEFINED_NAME, REDEFINED, MISSING_MEMBER,
)
from dragon.environment import TypeEnvironment, Binding
from dragon.inference import PROVEN, REFUTED, DEFERRED
from dragon.ontology import Nom
from dragon.primitive import ROOT, INT, STR, NONE, BOOL, FLOAT, SYM, Sym

from sketch import (
	quiet_engine, module, let, lit, look, binop, unop, call, is_, coalesce,
	t, sum_of, bang,
)

class InferenceTestCase(unittest.TestCase):
	def setUp(self):
		self.engine = quiet_engine()

	def imported(self, **bindings):
		""" An already-checked environment, holding bindings whose evidence is only what they declare. """
		env = TypeEnvironment("imported", [self.engine.prelude.env, ROOT])
		for name, typ in bindings.items():
			env.define_term(Nom(name), Binding(typ, typ, None))
		return env.finalize()

	def check(self, *decls, imports=()):
		return self.engine.check_module(module(*decls), *imports)

	def kinds(self, typed):
		return [d.kind for d in typed.diagnostics]

	def statuses(self, typed, site):
		return [o.status for o in typed.obligations if o.site is site]

class SynthesisTests(InferenceTestCase):
	def test_literals(self):
		for expect, value in [(INT, 1), (FLOAT, 1.5), (STR, "a"), (BOOL, False), (NONE, None), (SYM, Sym("x"))]:
			with self.subTest(value=value):
				self.assertEqual(expect, self.engine.infer(lit(value)))

	def test_tuples(self):
		self.assertEqual(product([INT, STR]), self.engine.infer(syntax.TupleExpr([lit(1), lit("a")])))

	def test_declarations_keep_declared_and_evidence(self):
		typed = self.check(let("m", lit(1), sum_of(t("int"), t("none"))), let("n", lit(2)))
		self.assertEqual([], typed.diagnostics)
		m = typed.env.term("m")
		self.assertEqual(union([INT, NONE]), m.declared)
		self.assertEqual(INT, m.evidence)
		self.assertEqual(INT, typed.env.term("n").declared)

	def test_operators(self):
		for expect, expr in [
			(INT, binop(lit(1), "+", lit(2))),
			(FLOAT, binop(lit(1.0), "**", lit(2.0))),
			(STR, binop(lit("a"), "+", lit("b"))),
			(BOOL, binop(lit("a"), "<", lit("b"))),
			(BOOL, binop(lit(None), "==", lit(None))),
			(BOOL, binop(lit(True), "xor", lit(False))),
			(FLOAT, unop("-", lit(1.5))),
			(BOOL, unop("not", lit(True))),
		]:
			with self.subTest(expect=expect):
				self.assertEqual(expect, self.engine.infer(expr))

	def test_no_applicable_case(self):
		for expr in [binop(lit(1), "+", lit("a")), unop("-", lit("a")), binop(lit(1), "@", lit(2))]:
			with self.subTest(expr=expr):
				problem = self.engine.infer(expr)
				self.assertIsInstance(problem, Diagnostic)
				self.assertEqual(TYPE_MISMATCH, problem.kind)

class NarrowingTests(InferenceTestCase):
	def test_proven_by_evidence(self):
		use = look("m")
		typed = self.check(let("m", lit(1), sum_of(t("int"), t("none"))), let("n", use, t("int")))
		self.assertEqual([], typed.diagnostics)
		self.assertEqual([PROVEN], self.statuses(typed, use))

	def test_deferred_to_run_time(self):
		use = look("maybe")
		env = self.imported(maybe=union([INT, NONE]))
		typed = self.check(let("n", use, t("int")), imports=[env])
		self.assertEqual([], typed.diagnostics)
		self.assertEqual([DEFERRED], self.statuses(typed, use))
		self.assertEqual(INT, typed.obligations[0].target)

	def test_is_operator(self):
		sure, never, maybe = is_(look("m"), t("int")), is_(look("m"), t("str")), is_(look("maybe"), t("int"))
		typed = self.check(
			let("m", lit(1), sum_of(t("int"), t("none"))),
			let("a", sure), let("b", never), let("c", maybe),
			imports=[self.imported(maybe=union([INT, NONE]))],
		)
		self.assertEqual([], typed.diagnostics)
		self.assertEqual([PROVEN], self.statuses(typed, sure))
		self.assertEqual([REFUTED], self.statuses(typed, never))
		self.assertEqual([DEFERRED], self.statuses(typed, maybe))
		self.assertEqual(BOOL, typed.env.term("c").declared)

	def test_coalesce(self):
		maybe, nothing = coalesce(look("maybe"), lit(0)), coalesce(lit(None), lit("x"))
		typed = self.check(let("a", maybe), let("b", nothing), imports=[self.imported(maybe=union([INT, NONE]))])
		self.assertEqual([], typed.diagnostics)
		self.assertEqual(INT, typed.env.term("a").declared)
		self.assertEqual(STR, typed.env.term("b").declared)
		self.assertEqual([DEFERRED], self.statuses(typed, maybe))
		self.assertEqual([REFUTED], self.statuses(typed, nothing))
		self.assertEqual(negate(NONE), typed.obligations[0].target)

	def test_mismatch_does_not_cascade(self):
		typed = self.check(
			let("x", lit(1), t("str")),
			let("y", look("x"), t("int")),
			let("z", binop(look("x"), "+", lit(1))),
		)
		self.assertEqual([TYPE_MISMATCH], self.kinds(typed))
		self.assertIs(ERROR, typed.env.term("x").declared)
		self.assertIs(ERROR, typed.env.term("z").declared)

	def test_annotation_spelled_through_a_complement(self):
		# int | !(int|str) is the same set as !str.
		use = look("y")
		expected = sum_of(t("int"), bang(sum_of(t("int"), t("str"))))
		typed = self.check(let("x", use, expected), imports=[self.imported(y=intersect([negate(STR), negate(NONE)]))])
		self.assertEqual([], typed.diagnostics)
		self.assertEqual([], self.statuses(typed, use))

	def test_trait_annotation(self):
		typed = self.check(let("n", lit(1), t("Num")), let("s", lit("a"), t("Num")))
		self.assertEqual([UNRESOLVED_TRAIT], self.kinds(typed))
		self.assertEqual(self.engine.lookup_type("Num"), typed.env.term("n").declared)

class NameTests(InferenceTestCase):
	def test_undefined_names_share_one_report(self):
		typed = self.check(let("y", look("nope")), let("z", lit(1), t("Nope")))
		self.assertEqual([UNDEFINED_NAME], self.kinds(typed))
		self.assertEqual(2, len(typed.diagnostics[0].annotations))
		self.assertIs(ERROR, typed.env.term("z").declared)

	def test_redefinition(self):
		typed = self.check(let("x", lit(1)), let("x", lit(2)))
		self.assertEqual([REDEFINED], self.kinds(typed))
		self.assertEqual(INT, typed.env.term("x").declared)

	def test_imports_are_visible(self):
		first = self.check(let("x", lit(1)))
		second = self.engine.check_module(module(let("y", binop(look("x"), "*", lit(3)), t("int")), name="second"), first)
		self.assertEqual([], second.diagnostics)
		self.assertEqual(INT, second.env.term("y").declared)

class OverloadTests(InferenceTestCase):
	def test_ambiguous(self):
		num = self.engine.lookup_type("Num")
		typed = self.check(let("x", binop(look("n"), "+", look("n"))), imports=[self.imported(n=num)])
		self.assertEqual([AMBIGUOUS_OVERLOAD], self.kinds(typed))
		self.assertEqual(3, len(typed.diagnostics[0].footer))

	def test_deferred_with_dynamic_operand(self):
		expr = binop(look("dyn"), "-", lit(1))
		typed = self.check(let("x", expr), imports=[self.imported(dyn=ANY)])
		self.assertEqual([], typed.diagnostics)
		self.assertEqual(INT, typed.env.term("x").declared)
		self.assertEqual([DEFERRED], self.statuses(typed, expr))
		self.assertEqual(product([INT, INT]), typed.obligations[0].target)

	def test_evidence_settles_the_case(self):
		expr = binop(look("m"), "+", lit(1))
		typed = self.check(let("m", lit(1), sum_of(t("int"), t("none"))), let("x", expr))
		self.assertEqual([], typed.diagnostics)
		self.assertEqual(INT, typed.env.term("x").declared)
		self.assertEqual([PROVEN], self.statuses(typed, expr))

class MethodCallTests(InferenceTestCase):
	def test_associated_functions(self):
		for expect, expr in [
			(INT, call(lit(1), "add", lit(2))),
			(STR, call(lit("a"), "show")),
			(INT, call(lit(1), "zero")),
			(BOOL, call(lit(2.5), "eq", lit(1.5))),
		]:
			with self.subTest(expect=expect):
				self.assertEqual(expect, self.engine.infer(expr))

	def test_missing_member(self):
		problem = self.engine.infer(call(lit("a"), "neg"))
		self.assertIsInstance(problem, Diagnostic)
		self.assertEqual(MISSING_MEMBER, problem.kind)

	def test_wrong_argument_count(self):
		problem = self.engine.infer(call(lit(1), "neg", lit(2)))
		self.assertEqual(TYPE_MISMATCH, problem.kind)

	def test_calls_through_a_trait(self):
		num = self.engine.lookup_type("Num")
		typed = self.check(let("x", call(look("n"), "add", look("n"))), imports=[self.imported(n=num)])
		self.assertEqual([], typed.diagnostics)
		self.assertEqual(num, typed.env.term("x").declared)

	def test_calls_on_every_disjunct(self):
		shown, added = call(look("m"), "show"), call(look("m"), "add", lit(1))
		typed = self.check(let("m", lit(1), sum_of(t("int"), t("none"))), let("s", shown), let("a", added))
		self.assertEqual([], typed.diagnostics)
		self.assertEqual(STR, typed.env.term("s").declared)
		self.assertEqual(INT, typed.env.term("a").declared)
		self.assertEqual([PROVEN], self.statuses(typed, added))

class BudgetTests(InferenceTestCase):
	def test_runaway_annotation_is_one_diagnostic(self):
		deep = t("int")
		for _ in range(200): deep = bang(deep)
		typed = self.check(let("x", lit(1), deep), let("y", lit(2)))
		self.assertEqual([BUDGET_EXCEEDED], self.kinds(typed))
		self.assertIs(ERROR, typed.env.term("x").declared)
		self.assertEqual(INT, typed.env.term("y").declared)

	def test_normalize_answers_with_a_diagnostic(self):
		deep = INT
		for _ in range(5000): deep = NegationType(deep)
		problem = self.engine.normalize(deep)
		self.assertIsInstance(problem, Diagnostic)
		self.assertEqual(BUDGET_EXCEEDED, problem.kind)
		self.assertIn("normalization", problem.as_text())

if __name__ == '__main__':
	unittest.main()
