from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from accounts.models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Admin panel for custom User model"""

    list_display = [
        "username",
        "email",
        "role",
        "verified",
        "current_streak",
        "longest_streak",
        "is_active",
    ]

    list_filter = [
        "role",
        "verified",
        "is_active",
        "is_staff",
    ]

    search_fields = [
        "username",
        "email",
        "department",
    ]

    ordering = ("username",)

    fieldsets = BaseUserAdmin.fieldsets + (
        (
            "Campus Profile",
            {
                "fields": (
                    "role",
                    "verified",
                    "department",
                    "year",
                    "bio",
                    "phone",
                    "photo_url",
                )
            },
        ),
        (
            "Activity",
            {
                "fields": (
                    "rides_shared",
                    "rides_taken",
                    "errands_completed",
                    "errands_requested",
                    "emergency_responses",
                    "current_streak",
                    "longest_streak",
                    "last_active_date",
                    "total_active_days",
                    "followers_count",
                    "following_count",
                )
            },
        ),
    )

    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        (
            "Campus Profile",
            {
                "fields": (
                    "role",
                    "department",
                )
            },
        ),
    )
