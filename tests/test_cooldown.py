import unittest
from datetime import date

from ancillary_engine.cooldown import evaluate, evaluate_for_code, latest_completion
from ancillary_engine.models import AncillaryService, PriorAncillaryRecord

TODAY = date(2026, 10, 19)


def _svc(policy, medicare=None, ppo=None):
    return AncillaryService(
        code="TEST_SVC",
        name="Test Service",
        category="Test",
        repeat_policy=policy,
        cooldown_months_medicare=medicare,
        cooldown_months_ppo=ppo,
    )


class TestCooldownPolicy(unittest.TestCase):
    def test_no_limit_ignores_completion(self):
        svc = _svc("NO_LIMIT", medicare=12, ppo=6)
        for last in (None, date(2026, 10, 18), date(2010, 1, 1)):
            res = evaluate(svc, "Medicare", last, today=TODAY)
            self.assertEqual(res.status, "no_limit")
            self.assertIsNone(res.eligible_date)

    def test_once_only(self):
        svc = _svc("ONCE_ONLY")
        self.assertEqual(evaluate(svc, "PPO", None, today=TODAY).status, "eligible")
        self.assertEqual(evaluate(svc, "PPO", date(2001, 5, 5), today=TODAY).status, "once_only_completed")
        self.assertEqual(evaluate(svc, "PPO", date(2026, 10, 1), today=TODAY).status, "once_only_completed")

    def test_cooldown_without_completion_is_eligible(self):
        svc = _svc("COOLDOWN", medicare=12, ppo=6)
        res = evaluate(svc, "PPO", None, today=TODAY)
        self.assertEqual(res.status, "eligible")
        self.assertIsNone(res.eligible_date)

    def test_ppo_twelve_months_six_months_ago(self):
        svc = _svc("COOLDOWN", ppo=12)
        last = date(2026, 4, 19)
        res = evaluate(svc, "PPO", last, today=TODAY)
        self.assertEqual(res.status, "in_cooldown")
        self.assertEqual(res.eligible_date, date(2027, 4, 19))

    def test_ppo_twelve_months_thirteen_months_ago(self):
        svc = _svc("COOLDOWN", ppo=12)
        res = evaluate(svc, "PPO", date(2025, 9, 19), today=TODAY)
        self.assertEqual(res.status, "eligible")
        self.assertIsNone(res.eligible_date)

    def test_eligible_on_exact_boundary(self):
        svc = _svc("COOLDOWN", ppo=6)
        res = evaluate(svc, "PPO", date(2026, 4, 19), today=TODAY)
        self.assertEqual(res.status, "eligible")

    def test_medicare_uses_medicare_duration(self):
        svc = _svc("COOLDOWN", medicare=12, ppo=6)
        last = date(2025, 12, 1)
        medicare = evaluate(svc, "Medicare", last, today=TODAY)
        self.assertEqual(medicare.status, "in_cooldown")
        self.assertEqual(medicare.eligible_date, date(2026, 12, 1))
        self.assertEqual(evaluate(svc, "PPO", last, today=TODAY).status, "eligible")

    def test_other_payors_use_ppo_duration(self):
        svc = _svc("COOLDOWN", medicare=12, ppo=6)
        last = date(2026, 8, 1)
        for payor in ("HMO", "Medicaid", "Other", "Unknown", None):
            res = evaluate(svc, payor, last, today=TODAY)
            self.assertEqual(res.status, "in_cooldown")
            self.assertEqual(res.eligible_date, date(2027, 2, 1))

    def test_missing_duration_means_no_gate(self):
        svc = _svc("COOLDOWN", medicare=12, ppo=None)
        res = evaluate(svc, "PPO", date(2026, 10, 1), today=TODAY)
        self.assertEqual(res.status, "eligible")

    def test_month_end_is_clamped(self):
        svc = _svc("COOLDOWN", ppo=1)
        res = evaluate(svc, "PPO", date(2026, 9, 30), today=date(2026, 10, 1))
        self.assertEqual(res.eligible_date, date(2026, 10, 30))
        res = evaluate(svc, "PPO", date(2027, 1, 31), today=date(2027, 2, 1))
        self.assertEqual(res.eligible_date, date(2027, 2, 28))

    def test_default_today_is_used(self):
        svc = _svc("COOLDOWN", ppo=12)
        res = evaluate(svc, "PPO", date(2000, 1, 1))
        self.assertEqual(res.status, "eligible")


class TestLatestCompletion(unittest.TestCase):
    def test_most_recent_record_wins(self):
        prior = [
            PriorAncillaryRecord(ancillary_code="TEST_SVC", completed_date="2024-01-01"),
            PriorAncillaryRecord(ancillary_code="TEST_SVC", completed_date="2026-08-01"),
            PriorAncillaryRecord(ancillary_code="OTHER", completed_date="2026-10-01"),
        ]
        self.assertEqual(latest_completion("TEST_SVC", prior), date(2026, 8, 1))
        self.assertIsNone(latest_completion("MISSING", prior))
        self.assertIsNone(latest_completion("TEST_SVC", None))

        svc = _svc("COOLDOWN", medicare=12, ppo=6)
        res = evaluate_for_code(svc, "PPO", prior, today=TODAY)
        self.assertEqual(res.status, "in_cooldown")
        self.assertEqual(res.eligible_date, date(2027, 2, 1))

    def test_iso_timestamp_is_accepted(self):
        rec = PriorAncillaryRecord(ancillary_code="TEST_SVC", completed_date="2026-03-05T14:30:00Z")
        self.assertEqual(rec.completed_date, date(2026, 3, 5))


if __name__ == "__main__":
    unittest.main()
