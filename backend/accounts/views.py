from dataclasses import asdict

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from services.activity import (
    earned_badges,
    get_achievement_progress,
    locked_badges,
    track_activity,
)
from .models import User
from .serializers import (
    ActivityStatsSerializer,
    BadgeSerializer,
    TrackActivitySerializer,
    UserSerializer,
)


class TrackActivityView(APIView):
    """
    Record an activity for the authenticated user.

    POST Body:
    {
        "activity_type": "errand_helped"
    }

    Tracking is best-effort: a skipped activity still answers 200 with the
    reason, so the caller's own flow never fails on it.
    """
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = TrackActivitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = track_activity(request.user.id, serializer.validated_data["activity_type"])

        return Response({
            "tracked": result.success,
            "activity_type": result.activity_type,
            "skip_reason": result.skip_reason,
        }, status=status.HTTP_200_OK)


class AchievementsView(APIView):
    """
    GET: Activity stats, streaks and badge progress for a user.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, user_id):
        user = get_object_or_404(User, id=user_id)

        return Response({
            "user": UserSerializer(user).data,
            "stats": ActivityStatsSerializer(user).data,
            "progress": asdict(get_achievement_progress(user)),
            "earned": BadgeSerializer(earned_badges(user), many=True).data,
            "locked": BadgeSerializer(locked_badges(user), many=True).data,
        })
