from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from .models import Ride
from .serializers import (
    RideSerializer,
    RideCreateSerializer,
    RideDocumentSerializer,
    RideMatchQuerySerializer,
    RideStatusSerializer,
)

# Import from services layer
from services.matching import search_matching_rides
from services.ride_management import (
    create_ride,
    join_ride,
    update_ride_status,
    RideNotFoundError,
    RideNotAvailableError,
    AlreadyJoinedError,
    NotRideHostError,
    InvalidStatusTransitionError,
)


# ==================== Ride Board APIs ====================

@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def ride_list(request):
    """List open rides (GET) or post a new offer/request (POST)"""
    if request.method == 'GET':
        rides = Ride.objects.filter(status=Ride.STATUS_OPEN).select_related('host')
        ride_type = request.query_params.get('type')
        if ride_type:
            rides = rides.filter(ride_type=ride_type)
        return Response({
            'count': rides.count(),
            'rides': RideSerializer(rides, many=True).data
        })

    serializer = RideCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        result = create_ride(host=request.user, **serializer.validated_data)
    except RideNotAvailableError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return Response({
        'message': result.message,
        'ride': RideSerializer(result.ride).data
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def match_rides(request):
    """Find open offers to a destination leaving within the match window of a time"""
    query = RideMatchQuerySerializer(data=request.query_params)
    if not query.is_valid():
        return Response(query.errors, status=status.HTTP_400_BAD_REQUEST)

    result = search_matching_rides(
        query.validated_data['destination'],
        query.validated_data['departure_time'],
    )

    if not result.success:
        code = (
            status.HTTP_400_BAD_REQUEST
            if result.error_code == 'invalid_request'
            else status.HTTP_503_SERVICE_UNAVAILABLE
        )
        return Response({'error': result.message, 'code': result.error_code}, status=code)

    return Response({
        'count': len(result.rides),
        'rides': RideDocumentSerializer(result.rides, many=True).data
    })


# ==================== Ride Actions ====================

@api_view(['POST'])
@permission_classes([IsAuthenticated])
def join(request, ride_id):
    """Take a seat on a ride offer"""
    try:
        result = join_ride(request.user, ride_id)
    except RideNotFoundError as e:
        return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
    except AlreadyJoinedError as e:
        return Response({'error': str(e)}, status=status.HTTP_409_CONFLICT)
    except RideNotAvailableError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return Response({
        'message': result.message,
        'ride': RideSerializer(result.ride).data
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def change_status(request, ride_id):
    """Host marks a ride as en route, completed or cancelled"""
    serializer = RideStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        result = update_ride_status(request.user, ride_id, serializer.validated_data['status'])
    except RideNotFoundError as e:
        return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
    except NotRideHostError as e:
        return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
    except InvalidStatusTransitionError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return Response({
        'message': result.message,
        'ride': RideSerializer(result.ride).data
    })
