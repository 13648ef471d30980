from decimal import Decimal

from rest_framework import serializers
from django.contrib.auth import authenticate
from .models import User
from transporters.models import TransporterProfile


class UserSerializer(serializers.ModelSerializer):
    full_name = serializers.SerializerMethodField(read_only=True)

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "full_name",
            "role",
            "phone_number",
        ]
        read_only_fields = ["id", "full_name"]

    def get_full_name(self, obj):
        return obj.get_full_name() or obj.username


class UserBasicSerializer(serializers.ModelSerializer):
    """Lite contact card used inside offers and orders."""
    full_name = serializers.SerializerMethodField(read_only=True)

    class Meta:
        model = User
        fields = ["id", "full_name", "phone_number"]

    def get_full_name(self, obj):
        return obj.get_full_name() or obj.username


class LoginSerializer(serializers.Serializer):
    username = serializers.CharField()
    password = serializers.CharField(write_only=True)

    def validate(self, data):
        user = authenticate(username=data["username"], password=data["password"])
        if not user:
            raise serializers.ValidationError("Invalid username or password")
        return user


class RegisterSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True)
    role = serializers.ChoiceField(choices=["farmer", "buyer", "transporter"])
    vehicle_number = serializers.CharField(required=False)
    vehicle_type = serializers.CharField(required=False)
    vehicle_capacity_kg = serializers.DecimalField(
        max_digits=10, decimal_places=2, required=False, min_value=Decimal("0")
    )
    base_location = serializers.CharField(required=False, allow_blank=True)

    class Meta:
        model = User
        fields = [
            'username', 'password', 'email', 'role', 'phone_number',
            'vehicle_number', 'vehicle_type', 'vehicle_capacity_kg', 'base_location',
        ]
    
    def validate_email(self, value):
        if User.objects.filter(email=value).exists():
            raise serializers.ValidationError("Email already exists")
        return value
    
    def validate(self, data):
        # Transporters must describe the vehicle they will be matched on
        if data['role'] == 'transporter':
            missing = {
                field: 'This field is required for transporters'
                for field in ('vehicle_number', 'vehicle_capacity_kg')
                if data.get(field) in (None, '')
            }
            if missing:
                raise serializers.ValidationError(missing)
        return data
    
    def create(self, validated_data):
        vehicle = {
            field: validated_data.pop(field)
            for field in ('vehicle_number', 'vehicle_type', 'vehicle_capacity_kg', 'base_location')
            if field in validated_data
        }
        
        user = User.objects.create_user(
            username=validated_data['username'],
            email=validated_data['email'],
            password=validated_data['password'],
            role=validated_data['role'],
            phone_number=validated_data['phone_number']
        )
        
        # Create transporter profile if role is transporter
        if user.role == 'transporter':
            TransporterProfile.objects.create(user=user, **vehicle)
        
        return user
