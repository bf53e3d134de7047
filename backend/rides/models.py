from django.db import models
from django.conf import settings


class Ride(models.Model):
    """A ride posted on the campus board: either a driver's offer or a request for one."""

    TYPE_OFFER = 'OFFER'
    TYPE_REQUEST = 'REQUEST'
    TYPE_CHOICES = [
        (TYPE_OFFER, 'Offer'),
        (TYPE_REQUEST, 'Request'),
    ]

    STATUS_OPEN = 'OPEN'
    STATUS_FILLED = 'FILLED'
    STATUS_EN_ROUTE = 'EN_ROUTE'
    STATUS_COMPLETED = 'COMPLETED'
    STATUS_CANCELLED = 'CANCELLED'
    STATUS_CHOICES = [
        (STATUS_OPEN, 'Open'),
        (STATUS_FILLED, 'Filled'),
        (STATUS_EN_ROUTE, 'En Route'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    host = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='hosted_rides'
    )

    ride_type = models.CharField(max_length=10, choices=TYPE_CHOICES, default=TYPE_OFFER)

    origin = models.CharField(max_length=255)
    # Matched by exact equality, no normalisation
    destination = models.CharField(max_length=255, db_index=True)
    departure_time = models.DateTimeField()

    # Null for requests
    seats_available = models.PositiveIntegerField(null=True, blank=True)

    passengers = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        related_name='joined_rides',
        blank=True
    )

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_OPEN)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'rides'
        ordering = ['departure_time']
        indexes = [
            models.Index(fields=['ride_type', 'status', 'destination'], name='ride_match_idx'),
        ]

    def __str__(self):
        return f"Ride #{self.id} - {self.ride_type} to {self.destination} - {self.status}"
