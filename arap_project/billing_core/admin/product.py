from django.contrib import admin

from billing_core.models import Counter, Product

from .mixins import TenantAdminMixin


# Register `Product` model
@admin.register(Product)
class ProductAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = (
        "id", "company", "code", "name", "sku", "unit",
        "unit_price", "tax_pct", "active", "is_deleted")
    list_filter = ("company", "active", "is_deleted")
    search_fields = ("code", "name", "sku")


# Register `Counter` model (read-only: sequences only move forward)
@admin.register(Counter)
class CounterAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("company", "key", "seq")
    list_filter = ("company",)
    search_fields = ("key",)

    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
