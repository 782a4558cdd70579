from django.contrib import messages

from ..exceptions import ConflictError
from ..models import EntityMembership
from ..services.audit_helper import actor, log_action

# Roles allowed to edit billing records; viewers only browse
WRITE_ROLES = ("owner", "admin", "accountant")


def _has_field(model, name):
    return any(f.name == name for f in model._meta.get_fields())


class TenantAdminMixin:
    """
    Admin scoped to request.company (set by CurrentCompanyMiddleware).
    Superusers see every company, soft-deleted rows included. Staff see the
    live rows of their current company and can write only when their
    membership there carries one of `write_roles`.
    """

    write_roles = WRITE_ROLES

    def _company(self, request):
        return getattr(request, "company", None)

    def _role(self, request):
        if request.user.is_superuser:
            return "owner"
        company = self._company(request)
        if company is None:
            return None
        return (
            EntityMembership.objects.filter(
                user=request.user, company=company, is_active=True)
            .values_list("role", flat=True)
            .first()
        )

    def _scoped(self, request, qs):
        company = self._company(request)
        if company is None:
            return qs.none()
        qs = qs.filter(company=company)
        if _has_field(qs.model, "is_deleted"):
            qs = qs.filter(is_deleted=False)
        return qs

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        if request.user.is_superuser:
            return qs
        return self._scoped(request, qs)

    def formfield_for_foreignkey(self, db_field, request, **kwargs):
        # FK choices: the current company itself, or its live rows
        rel_model = db_field.related_model
        if not request.user.is_superuser and rel_model is not None:
            company = self._company(request)
            if db_field.name == "company":
                kwargs["queryset"] = rel_model.objects.filter(
                    pk=company.pk if company else None)
            elif _has_field(rel_model, "company"):
                kwargs["queryset"] = self._scoped(
                    request, rel_model._default_manager.all())
        return super().formfield_for_foreignkey(db_field, request, **kwargs)

    def has_add_permission(self, request, *args):
        if self._role(request) not in self.write_roles:
            return False
        return super().has_add_permission(request, *args)

    def has_change_permission(self, request, obj=None):
        if self._role(request) not in self.write_roles:
            return False
        return super().has_change_permission(request, obj)

    def has_delete_permission(self, request, obj=None):
        if self._role(request) not in self.write_roles:
            return False
        return super().has_delete_permission(request, obj)

    def save_model(self, request, obj, form, change):
        if not request.user.is_superuser and self._company(request) is not None:
            obj.company = self._company(request)
        user = actor(request.user)
        if user is not None:
            if not change and _has_field(type(obj), "created_by"):
                obj.created_by = user
            if _has_field(type(obj), "updated_by"):
                obj.updated_by = user
        super().save_model(request, obj, form, change)

    def delete_model(self, request, obj):
        # billing rows are flagged, never removed
        if not _has_field(type(obj), "is_deleted"):
            return super().delete_model(request, obj)
        obj.is_deleted = True
        obj.save(update_fields=["is_deleted", "updated_at"])
        log_action(action="delete", instance=obj, user=request.user,
                   changes={"source": "admin"})

    def delete_queryset(self, request, queryset):
        for obj in queryset:
            self.delete_model(request, obj)


class DocumentAdminMixin(TenantAdminMixin):
    """
    Invoice/Bill admin. Documents in `locked_statuses` are read-only and
    deletes go through the document workflow, so the payment guard applies.
    """

    locked_statuses = ("paid", "void")
    # staticmethod(service) taking (company, pk, user=...)
    delete_document = None

    def get_readonly_fields(self, request, obj=None):
        if obj is not None and obj.status in self.locked_statuses:
            return [f.name for f in self.model._meta.fields]
        return super().get_readonly_fields(request, obj)

    def has_delete_permission(self, request, obj=None):
        if obj is not None and obj.status == "paid":
            return False
        return super().has_delete_permission(request, obj)

    def delete_model(self, request, obj):
        try:
            self.delete_document(obj.company, obj.pk, user=request.user)
        except ConflictError as exc:
            self.message_user(request, str(exc), level=messages.ERROR)
