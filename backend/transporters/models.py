from decimal import Decimal

from django.db import models
from django.conf import settings

User = settings.AUTH_USER_MODEL

class TransporterProfile(models.Model):
    """Transporter vehicle details, track record and availability status"""
    STATUS_CHOICES = [
        ('available', 'Available'),
        ('busy', 'Busy'),
        ('offline', 'Offline'),
    ]
    
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='transporter_profile')
    
    # Vehicle details
    vehicle_number = models.CharField(max_length=20, unique=True)
    vehicle_type = models.CharField(max_length=30, blank=True, default='')
    vehicle_capacity_kg = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))
    
    # Where the transporter operates from and which regions they serve
    base_location = models.CharField(max_length=200, blank=True, default='')
    service_areas = models.JSONField(default=list, blank=True)
    
    # Track record used for matching
    rating = models.DecimalField(max_digits=3, decimal_places=2, default=Decimal('0'))
    completed_deliveries = models.PositiveIntegerField(default=0)
    on_time_delivery_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0'))
    platform_score = models.IntegerField(default=0)
    
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='available')
    updated_at = models.DateTimeField(auto_now=True)
    
    class Meta:
        db_table = 'transporter_profiles'
        
    def __str__(self):
        return f"{self.user.username} - {self.vehicle_number}"
