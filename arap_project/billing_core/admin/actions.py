from django.contrib import admin, messages
from django.core.exceptions import ValidationError
from django.db import transaction

from ..services.audit_helper import log_action
from ..services.overdue import refresh_overdue

# ---------- Admin actions ----------


def _transition_selected(modeladmin, request, queryset, new_status):
    """
    Move each selected document through its transition map.
    Each document changes in its own transaction; failures are reported
    per row and do not stop the batch.
    """
    moved = 0
    for doc in queryset:
        try:
            with transaction.atomic():
                # re-load & lock the row to avoid race conditions
                locked = type(doc).objects.select_for_update().get(pk=doc.pk)
                old = locked.status
                # enforces the rules coded in transition_to()
                # instead of letting admins bypass them
                locked.transition_to(new_status)
                locked.save(update_fields=["status", "updated_at"])
                log_action(action="status", instance=locked, user=request.user,
                           changes={"from": old, "to": new_status})
            moved += 1
        except ValidationError as e:
            modeladmin.message_user(
                request, f"{doc}: {e}", level=messages.ERROR)
    modeladmin.message_user(
        request, f"Updated {moved} of {queryset.count()} document(s).",
        level=messages.SUCCESS)


""" Add button/action that call invoice.transition_to("sent") """


@admin.action(description="Mark selected invoices as Sent")
def mark_inv_as_sent(modeladmin, request, queryset):
    _transition_selected(modeladmin, request, queryset, "sent")


@admin.action(description="Void selected invoices")
def mark_inv_as_void(modeladmin, request, queryset):
    _transition_selected(modeladmin, request, queryset, "void")


@admin.action(description="Refresh overdue flags")
def refresh_overdue_flags(modeladmin, request, queryset):
    company = getattr(request, "company", None)
    if company is None and not request.user.is_superuser:
        modeladmin.message_user(
            request, "No company selected.", level=messages.ERROR)
        return
    marked, cleared = refresh_overdue(company=company)
    modeladmin.message_user(
        request, f"{marked} invoice(s) marked overdue, {cleared} cleared.")


""" Add button/action that call bill.transition_to("approved") """


@admin.action(description="Mark selected bills as Approved")
def mark_bill_as_approved(modeladmin, request, queryset):
    _transition_selected(modeladmin, request, queryset, "approved")


""" call bill.transition_to("paid") """


@admin.action(description="Mark selected bills as Paid")
def mark_bill_as_paid(modeladmin, request, queryset):
    _transition_selected(modeladmin, request, queryset, "paid")
