from django.db import models
from django.db.models import Q

from common.models import BaseModel


class CustomerStatus(models.TextChoices):
    LEAD = "Lead"
    CONTACTED = "Contacted"
    NEEDS_ANALYZED = "NeedsAnalyzed"
    QUOTED = "Quoted"
    NEGOTIATING = "Negotiating"
    WON = "Won"
    LOST = "Lost"


class CustomerSource(models.TextChoices):
    WEBSITE = "Website"
    REFERRAL = "Referral"
    SOCIAL_MEDIA = "SocialMedia"
    EVENT = "Event"
    DIRECT_CONTACT = "DirectContact"
    OTHER = "Other"


class InteractionChannel(models.TextChoices):
    PHONE = "Phone"
    WECHAT = "Wechat"
    EMAIL = "Email"
    OFFLINE = "Offline"
    OTHER = "Other"


class Customer(BaseModel):
    """
    Customer profile. Soft-deleted only; `last_interaction_at` is derived and
    written exclusively by the consistency coordinator.
    """
    company_name = models.CharField(max_length=200)
    contact_name = models.CharField(max_length=200)

    # contact
    wechat = models.CharField(max_length=100, blank=True, null=True)
    phone = models.CharField(max_length=50, blank=True, null=True)
    email = models.EmailField(max_length=255, blank=True, null=True)
    industry = models.CharField(max_length=100, blank=True, null=True)

    # lifecycle
    source = models.CharField(max_length=20, choices=CustomerSource.choices, blank=True, null=True)
    status = models.CharField(max_length=20, choices=CustomerStatus.choices, default=CustomerStatus.LEAD)
    tags = models.JSONField(default=list, blank=True)  # ["vip","newsletter"]
    score = models.PositiveSmallIntegerField(default=0)  # 0..100

    last_interaction_at = models.DateTimeField(blank=True, null=True, editable=False)
    is_deleted = models.BooleanField(default=False)

    class Meta:
        indexes = [
            models.Index(fields=["status"], name="crm_customer_status_idx"),
            models.Index(fields=["source"], name="crm_customer_source_idx"),
            models.Index(fields=["industry"], name="crm_customer_industry_idx"),
            models.Index(fields=["-last_interaction_at"], name="crm_customer_last_int_idx"),
            models.Index(fields=["-created_at"], name="crm_customer_created_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["company_name", "contact_name"],
                condition=Q(is_deleted=False),
                name="uniq_active_customer_name",
            ),
            models.CheckConstraint(condition=Q(score__gte=0) & Q(score__lte=100), name="customer_score_range"),
        ]

    def __str__(self):
        return f"{self.company_name} / {self.contact_name}"


class Interaction(BaseModel):
    """
    One event on a customer's timeline. Hard-deleted; never cascaded from the
    customer (customers are only soft-deleted, PROTECT guards the rest).
    """
    customer = models.ForeignKey("crm.Customer", on_delete=models.PROTECT, related_name="interactions")

    happened_at = models.DateTimeField()
    channel = models.CharField(max_length=20, choices=InteractionChannel.choices)
    stage = models.CharField(max_length=20, choices=CustomerStatus.choices, blank=True, null=True)  # status snapshot

    title = models.CharField(max_length=200)
    summary = models.TextField(max_length=2000, blank=True, null=True)
    raw_content = models.TextField(max_length=10000, blank=True, null=True)
    next_action = models.CharField(max_length=500, blank=True, null=True)

    attachments = models.JSONField(default=list, blank=True)  # [{"file_name":"...", "url":"..."}]

    class Meta:
        indexes = [
            models.Index(fields=["customer", "-happened_at"], name="crm_interaction_timeline_idx"),
        ]

    def __str__(self):
        return self.title
