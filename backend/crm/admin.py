from django.contrib import admin

from .models import Customer, Interaction


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("company_name", "contact_name", "status", "source", "score", "last_interaction_at", "is_deleted")
    list_filter = ("status", "source", "is_deleted")
    search_fields = ("company_name", "contact_name", "email", "phone")
    readonly_fields = ("last_interaction_at", "created_at", "updated_at")


@admin.register(Interaction)
class InteractionAdmin(admin.ModelAdmin):
    list_display = ("title", "customer", "channel", "happened_at")
    list_filter = ("channel",)
    search_fields = ("title", "summary")
    raw_id_fields = ("customer",)
