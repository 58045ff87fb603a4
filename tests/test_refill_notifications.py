import unittest
from datetime import datetime

from medtracker.models import Frequency
from medtracker.services.notifications.refill_tracker import in_refill_window
from medtracker.services.notifications.timers import refill_settle_key, refill_snooze_key

from support import EngineTestCase, days_from_start, make_medication


def _refill_medication(days_out, **overrides):
    # Evening dose time keeps dose reminders out of the refill scenarios
    return make_medication(
        frequency=Frequency(time_of_day="22:00"),
        refill_date=days_from_start(days_out) if days_out is not None else None,
        **overrides,
    )


class TestRefillWindow(unittest.TestCase):
    def test_window_is_a_lower_bound(self):
        self.assertTrue(in_refill_window(3, 3))
        self.assertTrue(in_refill_window(2, 3))
        self.assertTrue(in_refill_window(-4, 3))
        self.assertFalse(in_refill_window(4, 3))
        self.assertTrue(in_refill_window(0, 0))
        self.assertFalse(in_refill_window(1, 0))


class TestRefillArming(EngineTestCase):
    def test_refill_inside_window_fires_after_settle_delay(self):
        medication = _refill_medication(2)
        self.tick([medication])
        self.assertTrue(self.timers.is_pending(refill_settle_key("med-a")))

        self.timers.advance(29)
        self.assertEqual(self.engine.entries(), [])

        self.timers.advance(1)
        entries = self.engine.entries()
        self.assertEqual(self.entry_ids(entries), ["refill:med-a"])
        self.assertEqual(entries[0].days_until_refill, 2)
        self.assertEqual(entries[0].refill_date, days_from_start(2))
        self.assertEqual(self.entry_ids(self.tick([medication]).added), ["refill:med-a"])

    def test_refill_outside_window_does_not_fire(self):
        self.tick([_refill_medication(5)])
        self.timers.advance(30)
        self.assertEqual(self.engine.entries(), [])
        self.assertFalse(self.engine.state.refill_notified)

    def test_overdue_refill_fires(self):
        self.tick([_refill_medication(-1)])
        self.timers.advance(30)
        self.assertEqual(self.entry_ids(), ["refill:med-a"])

    def test_changed_refill_date_restarts_settle_delay(self):
        self.tick([_refill_medication(10)])
        self.timers.advance(10)

        self.tick([_refill_medication(2)])
        self.assertEqual(self.engine.state.previous_refill_date["med-a"], days_from_start(2))

        self.timers.advance(20)
        self.assertEqual(self.engine.entries(), [])
        self.timers.advance(10)
        self.assertEqual(self.entry_ids(), ["refill:med-a"])

    def test_unchanged_refill_date_does_not_rearm(self):
        medication = _refill_medication(2)
        self.tick([medication])
        self.timers.advance(30)
        self.engine.dismiss("refill:med-a")

        self.tick([medication])
        self.assertFalse(self.timers.is_pending(refill_settle_key("med-a")))
        self.timers.advance(60)
        self.assertEqual(self.engine.entries(), [])

    def test_refill_fires_once_per_day(self):
        self.tick([_refill_medication(1)])
        self.timers.advance(30)

        self.assertIsNone(self.engine.refill.evaluate("med-a"))
        self.assertEqual(len(self.engine.entries()), 1)


class TestRefillDisarm(EngineTestCase):
    def test_clearing_refill_date_cancels_pending_timer(self):
        self.tick([_refill_medication(2)])
        self.tick([_refill_medication(None)])

        self.assertFalse(self.timers.is_pending(refill_settle_key("med-a")))
        self.assertNotIn("med-a", self.engine.state.previous_refill_date)
        self.timers.advance(60)
        self.assertEqual(self.engine.entries(), [])

    def test_deactivated_or_deleted_medication_is_disarmed(self):
        self.tick([_refill_medication(2)])
        self.tick([_refill_medication(2, is_active=False)])
        self.assertFalse(self.timers.is_pending(refill_settle_key("med-a")))

        self.tick([_refill_medication(2)])
        self.tick([])
        self.assertFalse(self.timers.is_pending(refill_settle_key("med-a")))
        self.assertFalse(self.engine.state.previous_refill_date)


class TestRefillIntents(EngineTestCase):
    def test_snooze_defers_refill_to_next_day(self):
        self.tick([_refill_medication(3)])
        self.timers.advance(30)

        self.assertEqual(self.engine.snooze_refill("med-a"), [])
        self.assertEqual(self.engine.state.snoozed_refill["med-a"], datetime(2026, 3, 11, 0, 0))
        self.assertNotIn(("med-a", "2026-03-10"), self.engine.state.refill_notified)
        self.assertTrue(self.timers.is_pending(refill_snooze_key("med-a")))
        self.assertIsNone(self.engine.refill.evaluate("med-a"))

        self.timers.advance_to(datetime(2026, 3, 11, 0, 0, 30))
        entries = self.engine.entries()
        self.assertEqual(self.entry_ids(entries), ["refill:med-a"])
        self.assertEqual(entries[0].days_until_refill, 2)

    def test_mark_refilled_suppresses_through_refill_date(self):
        self.tick([_refill_medication(2)])
        self.timers.advance(30)

        self.assertEqual(self.engine.mark_refilled("med-a"), [])
        for day in ("2026-03-10", "2026-03-11", "2026-03-12"):
            self.assertIn(("med-a", day), self.engine.state.refill_notified)
        self.assertFalse(self.timers.is_pending(refill_settle_key("med-a")))
        self.assertFalse(self.timers.is_pending(refill_snooze_key("med-a")))

    def test_new_refill_date_after_refill_arms_again(self):
        self.tick([_refill_medication(2)])
        self.timers.advance(30)
        self.engine.mark_refilled("med-a")

        self.tick([_refill_medication(None)])
        self.tick([_refill_medication(30)])
        self.assertTrue(self.timers.is_pending(refill_settle_key("med-a")))


if __name__ == "__main__":
    unittest.main()
