from unittest.mock import MagicMock, patch

from django.test import TestCase
from rest_framework.test import APIRequestFactory

from .views import health_check


class HealthCheckTests(TestCase):
    def setUp(self):
        self.factory = APIRequestFactory()

    @patch("campus_backend.views.redis.Redis.from_url")
    def test_healthy(self, mock_from_url):
        mock_from_url.return_value = MagicMock()

        response = health_check(self.factory.get("/health/"))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["services"], {
            "database": "healthy",
            "redis": "healthy",
            "celery": "healthy",
        })

    @patch("campus_backend.views.redis.Redis.from_url", side_effect=ConnectionError("refused"))
    def test_redis_down(self, mock_from_url):
        response = health_check(self.factory.get("/health/"))

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.data["status"], "unhealthy")
        self.assertTrue(response.data["services"]["redis"].startswith("unhealthy"))
