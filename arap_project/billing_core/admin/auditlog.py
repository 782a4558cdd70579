from django.contrib import admin

from billing_core.models import AuditLog

from .mixins import TenantAdminMixin


@admin.register(AuditLog)
class AuditLogAdmin(TenantAdminMixin, admin.ModelAdmin):
    """Audit trail is written by the services only; admins can just browse it."""

    list_display = (
        "created_at",
        "company",
        "user",
        "action",
        "object_type",
        "object_id",
        "summary",
    )
    search_fields = ("object_type", "object_id", "user__username")
    list_filter = ("company", "action", "object_type")
    date_hierarchy = "created_at"
    ordering = ("-created_at", "-id")

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("company", "user")

    @admin.display(description="Changes")
    def summary(self, obj):
        if not obj.changes:
            return ""
        return ", ".join(f"{key}={value}" for key, value in obj.changes.items())

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
