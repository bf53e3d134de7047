from rest_framework import serializers

from services.activity import ActivityType
from .models import User


class UserSerializer(serializers.ModelSerializer):
    """Public profile with activity stats"""

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "first_name",
            "last_name",
            "role",
            "verified",
            "department",
            "year",
            "bio",
            "photo_url",
            "followers_count",
            "following_count",
        ]
        read_only_fields = fields


class ActivityStatsSerializer(serializers.ModelSerializer):
    total_activities = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            "rides_shared",
            "rides_taken",
            "errands_completed",
            "errands_requested",
            "emergency_responses",
            "current_streak",
            "longest_streak",
            "last_active_date",
            "total_active_days",
            "total_activities",
        ]
        read_only_fields = fields

    def get_total_activities(self, obj):
        return (
            obj.rides_shared
            + obj.rides_taken
            + obj.errands_completed
            + obj.errands_requested
            + obj.emergency_responses
        )


class BadgeSerializer(serializers.Serializer):
    id = serializers.CharField()
    name = serializers.CharField()
    description = serializers.CharField()


class TrackActivitySerializer(serializers.Serializer):
    activity_type = serializers.ChoiceField(choices=ActivityType.choices)
