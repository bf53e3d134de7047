from django.urls import path
from . import views

app_name = 'rides'

urlpatterns = [
    # Board
    path('', views.ride_list, name='ride-list'),
    path('match/', views.match_rides, name='match-rides'),

    # Ride actions
    path('<int:ride_id>/join/', views.join, name='join-ride'),
    path('<int:ride_id>/status/', views.change_status, name='ride-status'),
]
