from rest_framework import serializers

from .models import RestaurantSettings


class RestaurantSettingsSerializer(serializers.ModelSerializer):
    class Meta:
        model = RestaurantSettings
        fields = [
            "restaurant_name",
            "currency",
            "default_gst_percentage",
            "is_discount_approval_required",
            "is_card_payment_approval_required",
            "updated_at",
        ]
        read_only_fields = ["updated_at"]
