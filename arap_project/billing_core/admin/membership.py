from django.contrib import admin
from django.db.models import Count, Q

from billing_core.models import Company, EntityMembership

from .mixins import TenantAdminMixin

MANAGER_ROLES = ("owner", "admin")


# Register `Company` model (the tenant itself)
@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    list_display = (
        "id", "name", "slug", "currency_code", "active_members",
        "is_deleted", "created_at")
    search_fields = ("name", "slug")
    prepopulated_fields = {"slug": ("name",)}
    ordering = ("name",)

    def get_queryset(self, request):
        qs = super().get_queryset(request).annotate(_active_members=Count(
            "memberships", filter=Q(memberships__is_active=True), distinct=True))
        if request.user.is_superuser:
            return qs
        # a member only sees the companies they belong to
        return qs.filter(
            memberships__user=request.user, memberships__is_active=True)

    @admin.display(description="Members", ordering="_active_members")
    def active_members(self, obj):
        return obj._active_members

    def has_change_permission(self, request, obj=None):
        if request.user.is_superuser:
            return True
        if obj is None:
            return False
        return obj.memberships.filter(
            user=request.user, is_active=True, role__in=MANAGER_ROLES).exists()

    def has_add_permission(self, request):
        return request.user.is_superuser

    def has_delete_permission(self, request, obj=None):
        return request.user.is_superuser


# Memberships of the current company; only owners and admins manage them
@admin.register(EntityMembership)
class EntityMembershipAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("user", "company", "role", "is_active", "created_at")
    list_filter = ("role", "is_active", "company")
    search_fields = ("user__username", "user__email", "company__name")
    readonly_fields = ("created_at",)
    ordering = ("company__name", "user__username")
    write_roles = MANAGER_ROLES

    def get_queryset(self, request):
        return super().get_queryset(request).select_related("company", "user")

