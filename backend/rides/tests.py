from datetime import datetime, timedelta, timezone as dt_timezone
from io import StringIO
from unittest.mock import patch

from django.core.management import call_command
from django.db import DatabaseError
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework.test import APIRequestFactory, force_authenticate

from accounts.models import User
from common.store import DocumentStore
from services.activity import ActivityType
from services.matching import MatchResult, find_matching_rides, search_matching_rides
from services.ride_management import (
	create_ride,
	join_ride,
	update_ride_status,
	AlreadyJoinedError,
	InvalidStatusTransitionError,
	NoSeatsAvailableError,
	NotRideHostError,
	RideNotAvailableError,
	RideNotFoundError,
)
from .models import Ride
from .views import change_status, join, match_rides, ride_list

T = datetime(2030, 1, 15, 9, 0, tzinfo=dt_timezone.utc)


class FakeRideStore(DocumentStore):
	"""Serves raw ride documents and records the queries it receives."""

	def __init__(self, docs=None, error=None):
		self.docs = docs or []
		self.error = error
		self.queries = []

	def query(self, collection, **equals):
		self.queries.append((collection, equals))
		if self.error:
			raise self.error
		return [doc for doc in self.docs if all(doc.get(k) == v for k, v in equals.items())]


def offer(doc_id, departure_time, destination="Airport", **overrides):
	doc = {
		"id": doc_id,
		"host_id": 1,
		"ride_type": "OFFER",
		"status": "OPEN",
		"origin": "Main Gate",
		"destination": destination,
		"departure_time": departure_time,
		"seats_available": 2,
	}
	doc.update(overrides)
	return doc


class RideMatchingTests(TestCase):
	def setUp(self):
		self.host = User.objects.create_user(username="driver", password="pass1234")

	def _ride(self, destination="Airport", departure_time=T, seats=2, **kwargs):
		return Ride.objects.create(
			host=self.host,
			origin="Main Gate",
			destination=destination,
			departure_time=departure_time,
			seats_available=seats,
			**kwargs
		)

	def _ids(self, rides):
		return [ride["id"] for ride in rides]

	def test_example_scenario(self):
		a = self._ride(departure_time=T + timedelta(minutes=10))
		self._ride(destination="Mall")
		self._ride(departure_time=T + timedelta(hours=2))

		self.assertEqual(self._ids(find_matching_rides("Airport", T)), [a.id])

	def test_window_boundary_is_inclusive(self):
		early = self._ride(departure_time=T - timedelta(minutes=30))
		late = self._ride(departure_time=T + timedelta(minutes=30))
		self._ride(departure_time=T + timedelta(minutes=30, milliseconds=1))
		self._ride(departure_time=T - timedelta(minutes=31))

		self.assertEqual(self._ids(find_matching_rides("Airport", T)), [early.id, late.id])

	def test_only_open_offers_with_seats(self):
		good = self._ride()
		self._ride(seats=0)
		self._ride(status=Ride.STATUS_FILLED)
		self._ride(status=Ride.STATUS_CANCELLED)
		self._ride(status=Ride.STATUS_EN_ROUTE)
		self._ride(ride_type=Ride.TYPE_REQUEST, seats=None)

		self.assertEqual(self._ids(find_matching_rides("Airport", T)), [good.id])

	def test_destination_is_exact_and_case_sensitive(self):
		self._ride(destination="airport")
		self._ride(destination="Airport ")

		self.assertEqual(find_matching_rides("Airport", T), [])

	def test_sorted_by_closeness_with_stable_ties(self):
		far = self._ride(departure_time=T + timedelta(minutes=25))
		tie_first = self._ride(departure_time=T - timedelta(minutes=5))
		exact = self._ride(departure_time=T)
		tie_second = self._ride(departure_time=T + timedelta(minutes=5))

		self.assertEqual(
			self._ids(find_matching_rides("Airport", T)),
			[exact.id, tie_first.id, tie_second.id, far.id],
		)

	def test_iso_string_request_time(self):
		a = self._ride(departure_time=T + timedelta(minutes=10))

		self.assertEqual(self._ids(find_matching_rides("Airport", "2030-01-15T09:00:00Z")), [a.id])

	def test_query_is_equality_only(self):
		store = FakeRideStore()

		find_matching_rides("Airport", T, store=store)

		self.assertEqual(store.queries, [
			("rides", {"ride_type": "OFFER", "status": "OPEN", "destination": "Airport"}),
		])

	def test_mixed_timestamp_representations(self):
		store = FakeRideStore([
			offer("a", "2030-01-15T09:20:00Z"),
			offer("b", T + timedelta(minutes=5)),
			offer("c", "2030-01-15T14:40:00+05:30"),  # 09:10Z
		])

		self.assertEqual(self._ids(find_matching_rides("Airport", T, store=store)), ["b", "c", "a"])

	def test_malformed_timestamp_skips_only_that_ride(self):
		store = FakeRideStore([
			offer("bad", "next tuesday"),
			offer("missing", None),
			offer("good", "2030-01-15T09:15:00Z"),
		])

		with self.assertLogs("services.matching.ride_matcher", level="WARNING"):
			rides = find_matching_rides("Airport", T, store=store)

		self.assertEqual(self._ids(rides), ["good"])

	def test_non_finite_timestamp_skips_only_that_ride(self):
		store = FakeRideStore([
			offer("good", T),
			offer("inf", float("inf")),
			offer("nan", float("nan")),
		])

		with self.assertLogs("services.matching.ride_matcher", level="WARNING"):
			result = search_matching_rides("Airport", T, store=store)

		self.assertTrue(result.success)
		self.assertEqual(self._ids(result.rides), ["good"])

	def test_missing_seats_count_as_zero(self):
		docs = [offer("a", T), offer("b", T)]
		del docs[0]["seats_available"]
		store = FakeRideStore(docs)

		self.assertEqual(self._ids(find_matching_rides("Airport", T, store=store)), ["b"])

	def test_store_failure_returns_empty_list(self):
		store = FakeRideStore(error=DatabaseError("store unavailable"))

		with self.assertLogs("services.matching.ride_matcher", level="ERROR"):
			self.assertEqual(find_matching_rides("Airport", T, store=store), [])

	def test_search_distinguishes_failure_from_no_matches(self):
		empty = search_matching_rides("Airport", T, store=FakeRideStore())
		self.assertTrue(empty.success)
		self.assertEqual(empty.rides, [])

		with self.assertLogs("services.matching.ride_matcher", level="ERROR"):
			failed = search_matching_rides("Airport", T, store=FakeRideStore(error=DatabaseError("down")))
		self.assertFalse(failed.success)
		self.assertEqual(failed.error_code, "store_unavailable")

	def test_invalid_request(self):
		for destination, when in [("", T), (None, T), ("Airport", "soon"), ("Airport", None),
								  ("Airport", float("nan")), ("Airport", float("inf"))]:
			with self.subTest(destination=destination, when=when):
				result = search_matching_rides(destination, when, store=FakeRideStore())
				self.assertFalse(result.success)
				self.assertEqual(result.error_code, "invalid_request")
				self.assertEqual(find_matching_rides(destination, when, store=FakeRideStore()), [])

	@override_settings(RIDE_MATCH_WINDOW_MINUTES=10)
	def test_window_is_configurable(self):
		near = self._ride(departure_time=T + timedelta(minutes=10))
		self._ride(departure_time=T + timedelta(minutes=20))

		self.assertEqual(self._ids(find_matching_rides("Airport", T)), [near.id])


class RideLifecycleTests(TestCase):
	def setUp(self):
		self.host = User.objects.create_user(username="host", password="pass1234")
		self.rider = User.objects.create_user(username="rider", password="pass1234")
		self.other = User.objects.create_user(username="other", password="pass1234")

	def _offer(self, seats=1):
		return create_ride(self.host, origin="Hostel", destination="Station",
						   departure_time=T, seats_available=seats).ride

	@patch("services.ride_management.ride_lifecycle.enqueue_activity")
	def test_posting_offer_tracks_ride_shared(self, mock_enqueue):
		with self.captureOnCommitCallbacks(execute=True):
			result = create_ride(self.host, origin="Hostel", destination="Station",
								 departure_time=T, seats_available=3)

		self.assertTrue(result.success)
		self.assertEqual(result.ride.status, Ride.STATUS_OPEN)
		mock_enqueue.assert_called_once_with(self.host.id, ActivityType.RIDE_SHARED)

	@patch("services.ride_management.ride_lifecycle.enqueue_activity")
	def test_posting_request_is_not_tracked(self, mock_enqueue):
		with self.captureOnCommitCallbacks(execute=True):
			result = create_ride(self.host, origin="Hostel", destination="Station",
								 departure_time=T, ride_type=Ride.TYPE_REQUEST, seats_available=4)

		self.assertIsNone(result.ride.seats_available)
		mock_enqueue.assert_not_called()

	def test_offer_needs_seats(self):
		with self.assertRaises(RideNotAvailableError):
			create_ride(self.host, origin="Hostel", destination="Station", departure_time=T, seats_available=0)

	@patch("services.ride_management.ride_lifecycle.enqueue_activity")
	def test_join_takes_last_seat_and_fills_ride(self, mock_enqueue):
		ride = self._offer(seats=1)

		with self.captureOnCommitCallbacks(execute=True):
			result = join_ride(self.rider, ride.id)

		ride.refresh_from_db()
		self.assertEqual(result.extra, {"seats_available": 0})
		self.assertEqual(ride.seats_available, 0)
		self.assertEqual(ride.status, Ride.STATUS_FILLED)
		self.assertIn(self.rider, ride.passengers.all())
		mock_enqueue.assert_called_once_with(self.rider.id, ActivityType.RIDE_TAKEN)

		# Filled rides drop out of matching
		self.assertEqual(find_matching_rides("Station", T), [])
		with self.assertRaises(RideNotAvailableError):
			join_ride(self.other, ride.id)

	def test_join_twice(self):
		ride = self._offer(seats=3)
		join_ride(self.rider, ride.id)

		with self.assertRaises(AlreadyJoinedError):
			join_ride(self.rider, ride.id)

		ride.refresh_from_db()
		self.assertEqual(ride.seats_available, 2)

	def test_host_cannot_join_own_ride(self):
		ride = self._offer()
		with self.assertRaises(RideNotAvailableError):
			join_ride(self.host, ride.id)

	def test_join_without_seats(self):
		ride = self._offer()
		Ride.objects.filter(id=ride.id).update(seats_available=0)
		with self.assertRaises(NoSeatsAvailableError):
			join_ride(self.rider, ride.id)

	def test_join_missing_ride(self):
		with self.assertRaises(RideNotFoundError):
			join_ride(self.rider, 987654)

	def test_status_lifecycle(self):
		ride = self._offer()

		update_ride_status(self.host, ride.id, Ride.STATUS_EN_ROUTE)
		result = update_ride_status(self.host, ride.id, Ride.STATUS_COMPLETED)

		self.assertEqual(result.ride.status, Ride.STATUS_COMPLETED)
		with self.assertRaises(InvalidStatusTransitionError):
			update_ride_status(self.host, ride.id, Ride.STATUS_CANCELLED)

	def test_only_host_updates_status(self):
		ride = self._offer()
		with self.assertRaises(NotRideHostError):
			update_ride_status(self.rider, ride.id, Ride.STATUS_CANCELLED)


class RideApiTests(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()
		self.host = User.objects.create_user(username="host", password="pass1234")
		self.rider = User.objects.create_user(username="rider", password="pass1234")
		self.ride = Ride.objects.create(
			host=self.host, origin="Library", destination="Airport",
			departure_time=T + timedelta(minutes=10), seats_available=2
		)

	def _get(self, view, path, params, user=None, **kwargs):
		request = self.factory.get(path, params)
		force_authenticate(request, user=user or self.rider)
		return view(request, **kwargs)

	def _post(self, view, path, data, user=None, **kwargs):
		request = self.factory.post(path, data, format="json")
		force_authenticate(request, user=user or self.rider)
		return view(request, **kwargs)

	def test_match_endpoint(self):
		Ride.objects.create(host=self.host, origin="Library", destination="Mall",
							departure_time=T, seats_available=2)

		response = self._get(match_rides, "/api/rides/match/",
							 {"destination": "Airport", "departure_time": "2030-01-15T09:00:00Z"})

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data["count"], 1)
		self.assertEqual(response.data["rides"][0]["id"], self.ride.id)
		self.assertEqual(response.data["rides"][0]["host_id"], self.host.id)

	def test_match_endpoint_invalid_time(self):
		response = self._get(match_rides, "/api/rides/match/",
							 {"destination": "Airport", "departure_time": "whenever"})

		self.assertEqual(response.status_code, 400)
		self.assertEqual(response.data["code"], "invalid_request")

	def test_match_endpoint_destination_is_not_trimmed(self):
		response = self._get(match_rides, "/api/rides/match/",
							 {"destination": "Airport ", "departure_time": "2030-01-15T09:00:00Z"})

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data["count"], 0)

	def test_match_endpoint_missing_params(self):
		response = self._get(match_rides, "/api/rides/match/", {"destination": "Airport"})
		self.assertEqual(response.status_code, 400)

	@patch("rides.views.search_matching_rides")
	def test_match_endpoint_store_failure(self, mock_search):
		mock_search.return_value = MatchResult(success=False, error_code="store_unavailable",
											   message="Ride search is temporarily unavailable")

		response = self._get(match_rides, "/api/rides/match/",
							 {"destination": "Airport", "departure_time": "2030-01-15T09:00:00Z"})

		self.assertEqual(response.status_code, 503)

	def test_list_open_rides(self):
		Ride.objects.create(host=self.host, origin="Library", destination="Mall",
							departure_time=T, seats_available=2, status=Ride.STATUS_CANCELLED)

		response = self._get(ride_list, "/api/rides/", {})

		self.assertEqual(response.status_code, 200)
		self.assertEqual([r["id"] for r in response.data["rides"]], [self.ride.id])

	@patch("services.ride_management.ride_lifecycle.enqueue_activity")
	def test_post_offer(self, mock_enqueue):
		with self.captureOnCommitCallbacks(execute=True):
			response = self._post(ride_list, "/api/rides/", {
				"ride_type": "OFFER",
				"origin": "Hostel",
				"destination": "Airport",
				"departure_time": "2030-01-16T07:30:00Z",
				"seats_available": 3,
			}, user=self.host)

		self.assertEqual(response.status_code, 201)
		self.assertEqual(response.data["ride"]["host"]["id"], self.host.id)
		self.assertEqual(response.data["ride"]["seats_available"], 3)
		mock_enqueue.assert_called_once_with(self.host.id, ActivityType.RIDE_SHARED)

	def test_post_offer_without_seats(self):
		response = self._post(ride_list, "/api/rides/", {
			"ride_type": "OFFER",
			"origin": "Hostel",
			"destination": "Airport",
			"departure_time": "2030-01-16T07:30:00Z",
		}, user=self.host)

		self.assertEqual(response.status_code, 400)
		self.assertIn("seats_available", response.data)

	@patch("services.ride_management.ride_lifecycle.enqueue_activity")
	def test_join_endpoint(self, mock_enqueue):
		response = self._post(join, f"/api/rides/{self.ride.id}/join/", {}, ride_id=self.ride.id)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data["ride"]["seats_available"], 1)
		self.assertEqual(response.data["ride"]["passenger_ids"], [self.rider.id])

		response = self._post(join, f"/api/rides/{self.ride.id}/join/", {}, ride_id=self.ride.id)
		self.assertEqual(response.status_code, 409)

	def test_join_endpoint_missing_ride(self):
		response = self._post(join, "/api/rides/987654/join/", {}, ride_id=987654)
		self.assertEqual(response.status_code, 404)

	def test_status_endpoint(self):
		response = self._post(change_status, f"/api/rides/{self.ride.id}/status/",
							  {"status": "EN_ROUTE"}, user=self.host, ride_id=self.ride.id)
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data["ride"]["status"], "EN_ROUTE")

		response = self._post(change_status, f"/api/rides/{self.ride.id}/status/",
							  {"status": "COMPLETED"}, user=self.rider, ride_id=self.ride.id)
		self.assertEqual(response.status_code, 403)

		response = self._post(change_status, f"/api/rides/{self.ride.id}/status/",
							  {"status": "OPEN"}, user=self.host, ride_id=self.ride.id)
		self.assertEqual(response.status_code, 400)


class RideCommandTests(TestCase):
	def setUp(self):
		self.host = User.objects.create_user(username="host", password="pass1234")

	def test_verify_matching_cleans_up(self):
		out = StringIO()
		call_command("verify_matching", stdout=out)

		self.assertIn("PERFECT", out.getvalue())
		self.assertEqual(Ride.objects.count(), 0)

	def test_verify_matching_keep(self):
		call_command("verify_matching", "--keep", stdout=StringIO())
		self.assertEqual(Ride.objects.count(), 3)

	def test_cleanup_old_rides(self):
		old = timezone.now() - timedelta(days=40)
		finished = Ride.objects.create(host=self.host, origin="A", destination="B", departure_time=old,
									   seats_available=1, status=Ride.STATUS_COMPLETED)
		Ride.objects.create(host=self.host, origin="A", destination="B", departure_time=old,
							seats_available=1, status=Ride.STATUS_OPEN)
		Ride.objects.create(host=self.host, origin="A", destination="B", departure_time=timezone.now(),
							seats_available=1, status=Ride.STATUS_CANCELLED)

		call_command("cleanup_old_rides", "--dry-run", stdout=StringIO())
		self.assertEqual(Ride.objects.count(), 3)

		call_command("cleanup_old_rides", stdout=StringIO())
		self.assertEqual(Ride.objects.count(), 2)
		self.assertFalse(Ride.objects.filter(id=finished.id).exists())
