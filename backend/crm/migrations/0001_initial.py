import uuid

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Customer",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now, editable=False)),
                ("updated_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("company_name", models.CharField(max_length=200)),
                ("contact_name", models.CharField(max_length=200)),
                ("wechat", models.CharField(blank=True, max_length=100, null=True)),
                ("phone", models.CharField(blank=True, max_length=50, null=True)),
                ("email", models.EmailField(blank=True, max_length=255, null=True)),
                ("industry", models.CharField(blank=True, max_length=100, null=True)),
                ("source", models.CharField(blank=True, choices=[("Website", "Website"), ("Referral", "Referral"), ("SocialMedia", "Social Media"), ("Event", "Event"), ("DirectContact", "Direct Contact"), ("Other", "Other")], max_length=20, null=True)),
                ("status", models.CharField(choices=[("Lead", "Lead"), ("Contacted", "Contacted"), ("NeedsAnalyzed", "Needs Analyzed"), ("Quoted", "Quoted"), ("Negotiating", "Negotiating"), ("Won", "Won"), ("Lost", "Lost")], default="Lead", max_length=20)),
                ("tags", models.JSONField(blank=True, default=list)),
                ("score", models.PositiveSmallIntegerField(default=0)),
                ("last_interaction_at", models.DateTimeField(blank=True, editable=False, null=True)),
                ("is_deleted", models.BooleanField(default=False)),
            ],
            options={
                "indexes": [
                    models.Index(fields=["status"], name="crm_customer_status_idx"),
                    models.Index(fields=["source"], name="crm_customer_source_idx"),
                    models.Index(fields=["industry"], name="crm_customer_industry_idx"),
                    models.Index(fields=["-last_interaction_at"], name="crm_customer_last_int_idx"),
                    models.Index(fields=["-created_at"], name="crm_customer_created_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(condition=models.Q(("is_deleted", False)), fields=("company_name", "contact_name"), name="uniq_active_customer_name"),
                    models.CheckConstraint(condition=models.Q(("score__gte", 0), ("score__lte", 100)), name="customer_score_range"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Interaction",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now, editable=False)),
                ("updated_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("happened_at", models.DateTimeField()),
                ("channel", models.CharField(choices=[("Phone", "Phone"), ("Wechat", "Wechat"), ("Email", "Email"), ("Offline", "Offline"), ("Other", "Other")], max_length=20)),
                ("stage", models.CharField(blank=True, choices=[("Lead", "Lead"), ("Contacted", "Contacted"), ("NeedsAnalyzed", "Needs Analyzed"), ("Quoted", "Quoted"), ("Negotiating", "Negotiating"), ("Won", "Won"), ("Lost", "Lost")], max_length=20, null=True)),
                ("title", models.CharField(max_length=200)),
                ("summary", models.TextField(blank=True, max_length=2000, null=True)),
                ("raw_content", models.TextField(blank=True, max_length=10000, null=True)),
                ("next_action", models.CharField(blank=True, max_length=500, null=True)),
                ("attachments", models.JSONField(blank=True, default=list)),
                ("customer", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="interactions", to="crm.customer")),
            ],
            options={
                "indexes": [
                    models.Index(fields=["customer", "-happened_at"], name="crm_interaction_timeline_idx"),
                ],
            },
        ),
    ]
