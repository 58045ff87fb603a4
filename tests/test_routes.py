import unittest
from datetime import date, timedelta

import httpx
from fastapi import FastAPI

from medtracker.app import register_exception_handlers
from medtracker.models import Dosage, Frequency, UserPreferences
from medtracker.routes import api_router
from medtracker.services.background_services import BackgroundServiceManager, get_background_manager
from medtracker.services.notifications import NotificationEngine, NotificationSession

from support import FakePreferenceStore, FakeRepository, ManualClock, ManualTimers, make_medication, run_async


class RouteTestCase(unittest.TestCase):
    """API routes against in-memory stores and a pre-seeded manual-clock session."""

    def setUp(self):
        self.clock = ManualClock()
        self.repository = FakeRepository([
            make_medication(),
            make_medication(
                "med-b",
                frequency=Frequency(specific_times=["08:00", "20:00"]),
                refill_date=date.today() + timedelta(days=3),
            ),
        ])
        self.preference_store = FakePreferenceStore(UserPreferences(default_time="09:00", snooze_duration=5))
        self.manager = BackgroundServiceManager(repository=self.repository, preference_store=self.preference_store)
        self.session = NotificationSession(
            "web_user",
            self.repository,
            self.preference_store,
            poll_interval=3600,
            engine=NotificationEngine(ManualTimers(self.clock), clock=self.clock),
            clock=self.clock,
        )
        self.manager.sessions["web_user"] = self.session

        self.app = FastAPI()
        register_exception_handlers(self.app)
        self.app.include_router(api_router)
        self.app.dependency_overrides[get_background_manager] = lambda: self.manager

    def request(self, scenario, poll=False):
        async def runner():
            transport = httpx.ASGITransport(app=self.app)
            async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
                try:
                    if poll:
                        await self.session.poll_once()
                    return await scenario(client)
                finally:
                    await self.manager.stop_services()

        return run_async(runner())

    def entry_ids(self, response):
        return [entry["id"] for entry in response.json()["entries"]]


class TestNotificationRoutes(RouteTestCase):
    def test_feed_lists_pending_reminders(self):
        self.clock.set(9, 0)
        response = self.request(lambda client: client.get("/api/notifications/feed"), poll=True)

        self.assertEqual(response.status_code, 200)
        self.assertIs(response.json()["ok"], True)
        self.assertEqual(self.entry_ids(response), ["dose:med-a"])
        self.assertEqual(response.json()["entries"][0]["time"], "09:00")

    def test_taken_removes_entry_and_writes_through(self):
        self.clock.set(9, 0)
        response = self.request(
            lambda client: client.post("/api/notifications/taken", json={"medication_id": "med-a"}),
            poll=True,
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["entries"], [])
        self.assertEqual(self.repository.writes, [("record dose taken", "med-a")])

    def test_failed_write_is_reported_in_body(self):
        self.clock.set(9, 0)
        self.repository.fail_writes = True

        with self.assertLogs("medtracker", level="ERROR"):
            response = self.request(
                lambda client: client.post(
                    "/api/notifications/no-longer-taking/confirm", json={"medication_id": "med-a"}
                ),
                poll=True,
            )

        self.assertEqual(response.status_code, 200)
        self.assertIs(response.json()["ok"], False)
        self.assertEqual(response.json()["error"], "Failed to deactivate medication")

    def test_snooze_unknown_medication_is_404(self):
        response = self.request(
            lambda client: client.post("/api/notifications/snooze", json={"medication_id": "missing"})
        )

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"ok": False, "error": "Unknown medication: missing"})

    def test_snooze_duration_out_of_range_is_422(self):
        response = self.request(
            lambda client: client.post(
                "/api/notifications/snooze", json={"medication_id": "med-a", "duration_minutes": 90}
            )
        )

        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json()["error"], "Invalid request")


class TestPreferenceRoutes(RouteTestCase):
    def test_preferences_round_trip(self):
        async def scenario(client):
            saved = await client.put(
                "/api/preferences",
                json={"default_time": "20:00", "snooze_duration": 10, "refill_reminder_days_before": 2},
            )
            loaded = await client.get("/api/preferences")
            return saved, loaded

        saved, loaded = self.request(scenario)
        self.assertEqual(saved.status_code, 200)
        self.assertEqual(loaded.json()["default_time"], "20:00")
        self.assertEqual(self.preference_store.preferences.snooze_duration, 10)

    def test_invalid_default_time_is_rejected(self):
        response = self.request(lambda client: client.put("/api/preferences", json={"default_time": "24:00"}))

        self.assertEqual(response.status_code, 422)
        self.assertEqual(self.preference_store.preferences.default_time, "09:00")

    def test_store_failure_is_502(self):
        self.preference_store.fail_writes = True

        with self.assertLogs("medtracker", level="ERROR"):
            response = self.request(lambda client: client.put("/api/preferences", json={"default_time": "07:00"}))

        self.assertEqual(response.status_code, 502)
        self.assertEqual(response.json()["error"], "Failed to save settings")


class TestMedicationRoutes(RouteTestCase):
    def test_list_includes_display_fields(self):
        response = self.request(lambda client: client.get("/api/medications"))

        self.assertEqual(response.status_code, 200)
        views = {view["medication"]["id"]: view for view in response.json()["medications"]}
        self.assertEqual(views["med-a"]["display_time"], "09:00")
        self.assertEqual(views["med-a"]["dosage_text"], "1 tablet of 1 mg each")
        self.assertIsNone(views["med-a"]["days_until_refill"])
        self.assertEqual(views["med-b"]["display_time"], "08:00")
        self.assertEqual(views["med-b"]["days_until_refill"], 3)

    def test_list_reports_validation_errors(self):
        self.repository.medications["med-c"] = make_medication("med-c", dosage=Dosage(amount=0), is_active=False)
        response = self.request(lambda client: client.get("/api/medications"))

        views = {view["medication"]["id"]: view for view in response.json()["medications"]}
        self.assertEqual(views["med-a"]["validation_errors"], [])
        self.assertEqual(views["med-c"]["validation_errors"], ["Dosage amount must be greater than 0"])

    def test_schedule_matches_reminder_resolution(self):
        async def scenario(client):
            explicit = await client.get("/api/medications/med-b/schedule")
            implicit = await client.get("/api/medications/med-a/schedule")
            missing = await client.get("/api/medications/missing/schedule")
            return explicit, implicit, missing

        explicit, implicit, missing = self.request(scenario)
        self.assertEqual(explicit.json(), {
            "medication_id": "med-b",
            "times": ["08:00", "20:00"],
            "display_time": "08:00",
            "explicit": True,
        })
        self.assertIs(implicit.json()["explicit"], False)
        self.assertEqual(missing.status_code, 404)


if __name__ == "__main__":
    unittest.main()
