from rest_framework import serializers

from accounts.serializers import UserSerializer
from .models import Ride


class RideSerializer(serializers.ModelSerializer):
    """Serializer for rides on the board"""
    host = UserSerializer(read_only=True)
    passenger_ids = serializers.PrimaryKeyRelatedField(source='passengers', many=True, read_only=True)

    class Meta:
        model = Ride
        fields = ['id', 'host', 'ride_type', 'origin', 'destination', 'departure_time',
                  'seats_available', 'status', 'passenger_ids', 'created_at', 'updated_at']
        read_only_fields = fields


class RideCreateSerializer(serializers.ModelSerializer):
    """Serializer for posting rides"""
    seats_available = serializers.IntegerField(min_value=1, required=False, allow_null=True)

    class Meta:
        model = Ride
        fields = ['ride_type', 'origin', 'destination', 'departure_time', 'seats_available']

    def validate(self, data):
        if data.get('ride_type', Ride.TYPE_OFFER) == Ride.TYPE_OFFER and not data.get('seats_available'):
            raise serializers.ValidationError({'seats_available': 'Required for ride offers.'})
        return data


class RideDocumentSerializer(serializers.Serializer):
    """
    Serializer for ride documents returned by the matcher.

    Documents are plain dicts; departure_time may still be the raw string
    a writer stored.
    """
    id = serializers.IntegerField()
    host_id = serializers.IntegerField()
    ride_type = serializers.CharField()
    origin = serializers.CharField()
    destination = serializers.CharField()
    departure_time = serializers.DateTimeField()
    seats_available = serializers.IntegerField(allow_null=True)
    status = serializers.CharField()


class RideMatchQuerySerializer(serializers.Serializer):
    destination = serializers.CharField(trim_whitespace=False)
    departure_time = serializers.CharField()


class RideStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[
        Ride.STATUS_EN_ROUTE,
        Ride.STATUS_COMPLETED,
        Ride.STATUS_CANCELLED,
    ])
