import unittest

from app.services.levels import LevelRule, evaluate, level_progress

RULES = [
    LevelRule(level=2, threshold=15),
    LevelRule(level=3, threshold=50, reward_coins=5),
    LevelRule(level=4, threshold=200, reward_coins=20),
    LevelRule(level=5, threshold=60, active=False),
]


class EvaluateTests(unittest.TestCase):
    def test_no_qualifying_rule_keeps_level(self):
        result = evaluate(10, 1, RULES)
        self.assertFalse(result.leveled_up)
        self.assertEqual(result.new_level, 1)
        self.assertEqual(result.crossed, ())

    def test_single_promotion(self):
        result = evaluate(20, 1, RULES)
        self.assertTrue(result.leveled_up)
        self.assertEqual(result.new_level, 2)

    def test_highest_qualifying_level_wins(self):
        """Several thresholds passed at once jump straight to the top one."""
        result = evaluate(250, 1, RULES)
        self.assertEqual(result.new_level, 4)
        self.assertEqual([r.level for r in result.crossed], [2, 3, 4])

    def test_inactive_rules_are_ignored(self):
        result = evaluate(70, 3, RULES)
        self.assertFalse(result.leveled_up)
        self.assertEqual(result.new_level, 3)

    def test_level_never_decreases(self):
        result = evaluate(0, 4, RULES)
        self.assertEqual(result.new_level, 4)
        self.assertFalse(result.leveled_up)

    def test_reevaluating_same_score_is_stable(self):
        first = evaluate(60, 1, RULES)
        second = evaluate(60, first.new_level, RULES)
        self.assertTrue(first.leveled_up)
        self.assertFalse(second.leveled_up)
        self.assertEqual(second.new_level, first.new_level)

    def test_highest_level_not_lowest_threshold(self):
        rules = [LevelRule(level=2, threshold=10), LevelRule(level=3, threshold=5)]
        self.assertEqual(evaluate(12, 1, rules).new_level, 3)

    def test_fractional_scores(self):
        rules = [LevelRule(level=2, threshold=1.5)]
        self.assertFalse(evaluate(1.49, 1, rules).leveled_up)
        self.assertTrue(evaluate(1.5, 1, rules).leveled_up)


class LevelProgressTests(unittest.TestCase):
    def test_progress_towards_next_level(self):
        progress = level_progress(30, 2, RULES)
        self.assertFalse(progress["is_max_level"])
        self.assertEqual(progress["next_level"], 3)
        self.assertEqual(progress["remaining"], 20)
        self.assertEqual(progress["progress_pct"], 60.0)

    def test_progress_is_capped(self):
        progress = level_progress(80, 2, RULES)
        self.assertEqual(progress["remaining"], 0)
        self.assertEqual(progress["progress_pct"], 100.0)

    def test_max_level(self):
        progress = level_progress(500, 4, RULES)
        self.assertTrue(progress["is_max_level"])
        self.assertIsNone(progress["next_level"])
        self.assertEqual(progress["progress_pct"], 100.0)
