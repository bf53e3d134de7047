from django.urls import path

from .views import AchievementsView, TrackActivityView

app_name = "accounts"

urlpatterns = [
    path("track/", TrackActivityView.as_view(), name="track-activity"),
    path("<int:user_id>/achievements/", AchievementsView.as_view(), name="achievements"),
]
