from datetime import timezone as dt_timezone

from django.conf import settings
from rest_framework import serializers

from common.etag import encode

from .models import Customer, CustomerSource, CustomerStatus, Interaction, InteractionChannel

ORDER_CHOICES = [
    prefix + field
    for field in ("last_interaction_at", "created_at", "updated_at")
    for prefix in ("", "-")
]


# ---- Read serializers ----
class CustomerSerializer(serializers.ModelSerializer):
    version = serializers.SerializerMethodField()

    class Meta:
        model = Customer
        fields = (
            "id", "company_name", "contact_name", "wechat", "phone", "email", "industry",
            "source", "status", "tags", "score", "last_interaction_at",
            "created_at", "updated_at", "version",
        )
        read_only_fields = fields

    def get_version(self, obj):
        return encode(obj.updated_at)


class InteractionSerializer(serializers.ModelSerializer):
    version = serializers.SerializerMethodField()

    class Meta:
        model = Interaction
        fields = (
            "id", "customer", "happened_at", "channel", "stage", "title", "summary",
            "raw_content", "next_action", "attachments", "created_at", "updated_at", "version",
        )
        read_only_fields = fields

    def get_version(self, obj):
        return encode(obj.updated_at)


# ---- Write / query serializers (validation only; stores do the writing) ----
class CustomerWriteSerializer(serializers.Serializer):
    company_name = serializers.CharField(max_length=200)
    contact_name = serializers.CharField(max_length=200)
    wechat = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    phone = serializers.CharField(max_length=50, required=False, allow_blank=True, allow_null=True)
    email = serializers.EmailField(max_length=255, required=False, allow_blank=True, allow_null=True)
    industry = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    source = serializers.ChoiceField(choices=CustomerSource.choices, required=False, allow_null=True)
    status = serializers.ChoiceField(choices=CustomerStatus.choices, default=CustomerStatus.LEAD)
    tags = serializers.ListField(child=serializers.CharField(max_length=50), required=False, default=list)
    score = serializers.IntegerField(min_value=0, max_value=100, default=0)


class AttachmentSerializer(serializers.Serializer):
    file_name = serializers.CharField(max_length=255)
    url = serializers.URLField(max_length=2048)


class InteractionWriteSerializer(serializers.Serializer):
    happened_at = serializers.DateTimeField(default_timezone=dt_timezone.utc)
    channel = serializers.ChoiceField(choices=InteractionChannel.choices)
    stage = serializers.ChoiceField(choices=CustomerStatus.choices, required=False, allow_null=True)
    title = serializers.CharField(max_length=200)
    summary = serializers.CharField(max_length=2000, required=False, allow_blank=True, allow_null=True)
    raw_content = serializers.CharField(max_length=10000, required=False, allow_blank=True, allow_null=True)
    next_action = serializers.CharField(max_length=500, required=False, allow_blank=True, allow_null=True)
    attachments = AttachmentSerializer(many=True, required=False)


class CustomerSearchSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=CustomerStatus.choices, required=False)
    source = serializers.ChoiceField(choices=CustomerSource.choices, required=False)
    industry = serializers.CharField(max_length=100, required=False)
    keyword = serializers.CharField(required=False, allow_blank=True)
    page = serializers.IntegerField(min_value=1, default=1)
    page_size = serializers.IntegerField(min_value=1, required=False)
    order = serializers.ChoiceField(choices=ORDER_CHOICES, default="-last_interaction_at")

    def validate_page_size(self, value):
        # rejected, never clamped
        if value > settings.CRM_MAX_PAGE_SIZE:
            raise serializers.ValidationError(f"Ensure this value is less than or equal to {settings.CRM_MAX_PAGE_SIZE}.")
        return value
