# wallet/admin.py

from django.contrib import admin

from wallet.models import Transaction


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ("reference_number", "user", "type", "amount", "status", "order", "created_at")
    list_filter = ("type", "status", "created_at")
    search_fields = ("reference_number", "user__email", "user__username", "description")
    readonly_fields = [f.name for f in Transaction._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
