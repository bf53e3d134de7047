from django.db import models
from django.contrib.auth.models import AbstractUser


class User(AbstractUser):
    """Campus user; also carries the activity profile used for streaks and badges"""
    ROLE_CHOICES = [
        ('student', 'Student'),
        ('faculty', 'Faculty'),
        ('admin', 'Admin'),
    ]

    # Role & basic info
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default='student')
    verified = models.BooleanField(default=False)  # faculty verification
    department = models.CharField(max_length=100, blank=True)
    year = models.CharField(max_length=30, blank=True)
    bio = models.TextField(blank=True)
    phone = models.CharField(max_length=15, blank=True)
    photo_url = models.URLField(blank=True)

    # Social
    followers_count = models.PositiveIntegerField(default=0)
    following_count = models.PositiveIntegerField(default=0)

    # Lifetime activity counters
    rides_shared = models.PositiveIntegerField(default=0)
    rides_taken = models.PositiveIntegerField(default=0)
    errands_completed = models.PositiveIntegerField(default=0)
    errands_requested = models.PositiveIntegerField(default=0)
    emergency_responses = models.PositiveIntegerField(default=0)

    # Streak tracking (UTC calendar days)
    current_streak = models.PositiveIntegerField(default=0)
    longest_streak = models.PositiveIntegerField(default=0)
    last_active_date = models.DateField(null=True, blank=True)
    total_active_days = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = 'users'

    def __str__(self):
        return f"{self.username} ({self.get_role_display()})"
