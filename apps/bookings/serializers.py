"""Serializers for the booking domain."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from apps.partners.models import Partner

from .models import Booking
from .services import create_booking


class BookingCreateSerializer(serializers.ModelSerializer):
    """Booking request made by a client.

    The partner is taken from the parking spot when only the spot is given.
    """

    partner = serializers.PrimaryKeyRelatedField(queryset=Partner.objects.all(), required=False)

    class Meta:
        model = Booking
        fields = [
            "partner",
            "parking_spot",
            "payment",
            "start_time",
            "end_time",
            "amount_paid",
            "payment_method",
        ]
        extra_kwargs = {
            "parking_spot": {"required": False},
            "payment": {"required": False},
            "amount_paid": {"required": False, "min_value": 0},
            "payment_method": {"required": False, "allow_blank": True},
        }

    def validate(self, attrs):  # type: ignore
        if attrs["start_time"] >= attrs["end_time"]:
            raise serializers.ValidationError("Booking end time must be after its start time.")

        spot = attrs.get("parking_spot")
        partner = attrs.get("partner")
        if spot is None and partner is None:
            raise serializers.ValidationError({"partner": ["Provide a partner or a parking spot."]})
        if spot is not None:
            if partner is not None and spot.partner_id != partner.pk:
                raise serializers.ValidationError({"parking_spot": ["Parking spot belongs to another partner."]})
            if not spot.is_active:
                raise serializers.ValidationError({"parking_spot": ["Parking spot is not accepting bookings."]})
            attrs["partner"] = spot.partner

        payment = attrs.get("payment")
        if payment is not None:
            if payment.client_id != self.context["request"].user.id:
                raise serializers.ValidationError({"payment": ["Payment does not belong to you."]})
            attrs.setdefault("amount_paid", payment.amount)
            attrs.setdefault("payment_method", payment.method)
        return attrs

    def create(self, validated_data):  # type: ignore
        return create_booking({**validated_data, "client": self.context["request"].user})


class BookingStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Booking.Status.choices)


class BookingSerializer(serializers.ModelSerializer):
    """Detailed booking representation."""

    client_id = serializers.ReadOnlyField()
    partner_id = serializers.ReadOnlyField()
    parking_spot_id = serializers.ReadOnlyField()
    payment_id = serializers.ReadOnlyField()
    parking_spot_name = serializers.ReadOnlyField(source="parking_spot.name", default=None)

    class Meta:
        model = Booking
        fields = [
            "id",
            "booking_code",
            "client_id",
            "partner_id",
            "parking_spot_id",
            "parking_spot_name",
            "payment_id",
            "start_time",
            "end_time",
            "status",
            "amount_paid",
            "payment_method",
            "is_refunded",
            "refund_amount",
            "cancelled_at",
            "cancellation_source",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
