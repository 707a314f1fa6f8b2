import logging

from django.contrib.auth import authenticate
from rest_framework import serializers, status
from rest_framework.authtoken.models import Token
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from .permissions import IsSalonAdmin

logger = logging.getLogger(__name__)


class LoginSerializer(serializers.Serializer):
    username = serializers.CharField(
        error_messages={"required": "Please provide username and password", "blank": "Please provide username and password"},
    )
    password = serializers.CharField(
        trim_whitespace=False,
        error_messages={"required": "Please provide username and password", "blank": "Please provide username and password"},
    )


class AdminUserSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    username = serializers.CharField()


class LoginView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = authenticate(
            request,
            username=serializer.validated_data["username"],
            password=serializer.validated_data["password"],
        )
        if user is None or not user.is_salon_admin:
            logger.warning("Failed admin login for %s", serializer.validated_data["username"])
            return Response({"message": "Invalid credentials"}, status=status.HTTP_401_UNAUTHORIZED)

        token, _ = Token.objects.get_or_create(user=user)
        return Response({**AdminUserSerializer(user).data, "token": token.key})


class MeView(APIView):
    permission_classes = [IsSalonAdmin]

    def get(self, request):
        return Response(AdminUserSerializer(request.user).data)
