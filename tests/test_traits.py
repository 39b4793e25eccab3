import unittest
from itertools import combinations

from dragon.calculus import OpaqueType, intersect, negate, union
from dragon.diagnostics import UNRESOLVED_TRAIT, REDEFINED
from dragon.primitive import ATOMS, INT, STR, SYM, FLOAT, NONE
from dragon.traits import Registry, Namespace, Signature

from sketch import quiet_engine, module, trait, fn, const, associate, alias, opaque, t, sum_of

class BuiltInTraitTests(unittest.TestCase):
	def setUp(self):
		self.engine = quiet_engine()
		self.traits = {name: self.engine.lookup_type(name) for name in ("Num", "Eq", "Show")}

	def test_preamble_checks_cleanly(self):
		self.assertTrue(self.engine.report.ok())
		self.assertEqual([], self.engine.prelude.diagnostics)

	def test_who_implements_what(self):
		num, eq, show = self.traits["Num"], self.traits["Eq"], self.traits["Show"]
		self.assertTrue(self.engine.implements(INT, num))
		self.assertTrue(self.engine.implements(FLOAT, num))
		self.assertFalse(self.engine.implements(STR, num))
		self.assertTrue(self.engine.implements(STR, intersect([eq, show])))
		self.assertFalse(self.engine.implements(NONE, eq))
		self.assertFalse(self.engine.implements(SYM, show))

	def test_intersection_is_conjunction(self):
		for typ in ATOMS:
			for a, b in combinations(self.traits.values(), 2):
				with self.subTest(typ=typ, a=a, b=b):
					expect = self.engine.implements(typ, a) and self.engine.implements(typ, b)
					self.assertEqual(expect, self.engine.implements(typ, intersect([a, b])))

	def test_negation_is_closed_world(self):
		num = self.traits["Num"]
		self.assertTrue(self.engine.implements(STR, negate(num)))
		self.assertFalse(self.engine.implements(INT, negate(num)))
		self.assertTrue(self.engine.implements(union([STR, NONE]), negate(num)))

	def test_explain_names_the_shortfall(self):
		num = self.traits["Num"]
		self.assertEqual(["Num.add", "Num.neg", "Num.zero"], sorted(self.engine.resolver.explain(STR, num)))
		self.assertEqual([], self.engine.resolver.explain(INT, num))

class UserTraitTests(unittest.TestCase):
	def setUp(self):
		self.engine = quiet_engine()

	def test_association_satisfies_a_claim(self):
		typed = self.engine.check_module(module(
			trait("Area", [fn("area", [t("Self")], t("float"))]),
			alias("Circle", opaque(t("float"))),
			associate(t("Circle"), [fn("area", [t("Self")], t("float"))], claims=[t("Area")]),
		))
		self.assertEqual([], typed.diagnostics)
		circle, area = typed.env.type_entry("Circle"), typed.env.type_entry("Area")
		self.assertIsInstance(circle, OpaqueType)
		self.assertTrue(self.engine.implements(circle, area))
		self.assertFalse(self.engine.implements(FLOAT, area))

	def test_failed_claim_is_reported(self):
		typed = self.engine.check_module(module(
			associate(t("str"), claims=[t("Num")]),
		))
		self.assertEqual([UNRESOLVED_TRAIT], [d.kind for d in typed.diagnostics])
		self.assertIn("Num.zero", typed.diagnostics[0].as_text())

	def test_variance(self):
		typed = self.engine.check_module(module(
			trait("Maker", [fn("make", [t("Self")], sum_of(t("int"), t("none")))]),
			trait("Taker", [fn("take", [t("Self"), t("int")], t("bool"))]),
			alias("Generous", opaque(t("int"))),
			alias("Picky", opaque(t("int"))),
			associate(t("Generous"), [
				fn("make", [t("Self")], t("int")),
				fn("take", [t("Self"), sum_of(t("int"), t("str"))], t("bool")),
			]),
			associate(t("Picky"), [
				fn("make", [t("Self")], sum_of(t("int"), t("str"))),
				fn("take", [t("Self"), t("str")], t("bool")),
			]),
		))
		self.assertEqual([], typed.diagnostics)
		env = typed.env
		maker, taker = env.type_entry("Maker"), env.type_entry("Taker")
		generous, picky = env.type_entry("Generous"), env.type_entry("Picky")
		self.assertTrue(self.engine.implements(generous, maker))
		self.assertTrue(self.engine.implements(generous, taker))
		self.assertFalse(self.engine.implements(picky, maker))
		self.assertFalse(self.engine.implements(picky, taker))

	def test_constants(self):
		typed = self.engine.check_module(module(
			trait("Default", constants=[const("default", t("Self"))]),
			associate(t("str"), constants=[const("default", t("str"))], claims=[t("Default")]),
			associate(t("sym"), constants=[const("default", t("none"))]),
		))
		self.assertEqual([], typed.diagnostics)
		default = typed.env.type_entry("Default")
		self.assertTrue(self.engine.implements(STR, default))
		self.assertFalse(self.engine.implements(SYM, default))

	def test_duplicate_association_is_redefinition(self):
		typed = self.engine.check_module(module(
			associate(t("sym"), [fn("show", [t("Self")], t("str"))]),
			associate(t("sym"), [fn("show", [t("Self")], t("str"))]),
		))
		self.assertEqual([REDEFINED], [d.kind for d in typed.diagnostics])

	def test_new_associations_refresh_old_answers(self):
		show = self.engine.lookup_type("Show")
		self.assertFalse(self.engine.implements(SYM, show))
		self.engine.check_module(module(
			associate(t("sym"), [fn("show", [t("Self")], t("str"))], claims=[t("Show")]),
		))
		self.assertTrue(self.engine.implements(SYM, show))

class RegistryTests(unittest.TestCase):
	def test_generation_moves_with_every_declaration(self):
		registry = Registry()
		before = registry.generation
		registry.associate(INT, "twice", Signature((INT,), INT))
		self.assertGreater(registry.generation, before)
		self.assertEqual(Namespace({"twice": Signature((INT,), INT)}, {}), registry.namespace(INT))
		self.assertEqual([INT], registry.known_types())

if __name__ == '__main__':
	unittest.main()
