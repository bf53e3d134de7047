from datetime import date, datetime, timedelta, timezone

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase

from common.store import (
    DjangoDocumentStore,
    DocumentNotFoundError,
    Increment,
    UnknownCollectionError,
)
from common.utils import Instant, InvalidTimestampError, to_calendar_date, to_epoch_millis
from rides.models import Ride

User = get_user_model()

NEW_YEAR_MS = 1704067200000  # 2024-01-01T00:00:00Z


class InstantTests(SimpleTestCase):
    def test_aware_datetime(self):
        value = datetime(2024, 1, 1, tzinfo=timezone.utc)
        self.assertEqual(to_epoch_millis(value), NEW_YEAR_MS)

    def test_naive_datetime_is_utc(self):
        self.assertEqual(to_epoch_millis(datetime(2024, 1, 1)), NEW_YEAR_MS)

    def test_offset_datetime(self):
        value = datetime(2024, 1, 1, 5, 30, tzinfo=timezone(timedelta(hours=5, minutes=30)))
        self.assertEqual(to_epoch_millis(value), NEW_YEAR_MS)

    def test_iso_strings(self):
        self.assertEqual(to_epoch_millis("2024-01-01T00:00:00Z"), NEW_YEAR_MS)
        self.assertEqual(to_epoch_millis("2024-01-01T05:30:00+05:30"), NEW_YEAR_MS)
        self.assertEqual(to_epoch_millis("2024-01-01T00:00:00.250Z"), NEW_YEAR_MS + 250)

    def test_bare_date_string_is_utc_midnight(self):
        self.assertEqual(to_epoch_millis("2024-01-01"), NEW_YEAR_MS)

    def test_epoch_millis_pass_through(self):
        self.assertEqual(to_epoch_millis(NEW_YEAR_MS), NEW_YEAR_MS)
        self.assertEqual(Instant.from_value(Instant(5)), Instant(5))

    def test_datetime_and_string_forms_agree(self):
        structured = Instant.from_value(datetime(2030, 6, 1, 8, 15, tzinfo=timezone.utc))
        text = Instant.from_value("2030-06-01T08:15:00Z")
        self.assertEqual(structured, text)
        self.assertEqual(structured.distance_to(text), 0)

    def test_distance_is_absolute(self):
        self.assertEqual(Instant(1000).distance_to(Instant(4000)), 3000)
        self.assertEqual(Instant(4000).distance_to(Instant(1000)), 3000)

    def test_rejects_unparseable_values(self):
        for value in ["not a date", "2024-13-45T99:00:00", "", None, True, [], {},
                      float("nan"), float("inf"), float("-inf")]:
            with self.subTest(value=value):
                with self.assertRaises(InvalidTimestampError):
                    Instant.from_value(value)

    def test_to_datetime(self):
        self.assertEqual(Instant(NEW_YEAR_MS).to_datetime(), datetime(2024, 1, 1, tzinfo=timezone.utc))


class CalendarDateTests(SimpleTestCase):
    def test_empty_values(self):
        self.assertIsNone(to_calendar_date(None))
        self.assertIsNone(to_calendar_date(""))

    def test_date_and_string(self):
        self.assertEqual(to_calendar_date(date(2024, 1, 4)), date(2024, 1, 4))
        self.assertEqual(to_calendar_date("2024-01-04"), date(2024, 1, 4))

    def test_datetime_uses_utc_date(self):
        eastern = timezone(timedelta(hours=-5))
        late_evening = datetime(2024, 1, 1, 22, 0, tzinfo=eastern)
        self.assertEqual(to_calendar_date(late_evening), date(2024, 1, 2))

    def test_invalid_string(self):
        with self.assertRaises(InvalidTimestampError):
            to_calendar_date("yesterday")


class DjangoDocumentStoreTests(TestCase):
    def setUp(self):
        self.store = DjangoDocumentStore()
        self.host = User.objects.create_user(username="host", password="pass1234")
        self.when = datetime(2030, 1, 15, 9, 0, tzinfo=timezone.utc)

    def _ride(self, destination, **kwargs):
        kwargs.setdefault("seats_available", 2)
        return Ride.objects.create(
            host=self.host, origin="Main Gate", destination=destination,
            departure_time=self.when, **kwargs
        )

    def test_query_is_equality_only_in_insertion_order(self):
        first = self._ride("Airport")
        self._ride("Mall")
        third = self._ride("Airport")

        docs = self.store.query("rides", destination="Airport", status="OPEN")

        self.assertEqual([doc["id"] for doc in docs], [first.id, third.id])
        self.assertEqual(docs[0]["host_id"], self.host.id)
        self.assertEqual(docs[0]["departure_time"], self.when)

    def test_get_returns_document_or_none(self):
        doc = self.store.get("users", self.host.id)
        self.assertEqual(doc["id"], self.host.id)
        self.assertEqual(doc["rides_shared"], 0)
        self.assertIsNone(self.store.get("users", 987654))

    def test_update_applies_increments_and_values(self):
        with self.store.atomic():
            self.store.update("users", self.host.id, {
                "rides_shared": Increment(1),
                "current_streak": 4,
            })
        self.store.update("users", self.host.id, {"rides_shared": Increment(2)})

        self.host.refresh_from_db()
        self.assertEqual(self.host.rides_shared, 3)
        self.assertEqual(self.host.current_streak, 4)

    def test_update_missing_document(self):
        with self.assertRaises(DocumentNotFoundError):
            self.store.update("users", 987654, {"current_streak": 1})

    def test_unknown_collection(self):
        with self.assertRaises(UnknownCollectionError):
            self.store.query("errands")
