from django.contrib import admin
from .models import Transaction

@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ('id', 'phone_number', 'amount', 'status', 'is_orphan', 'mpesa_receipt_number', 'created_at')
    list_filter = ('status', 'is_orphan')
    search_fields = ('phone_number', 'mpesa_receipt_number', 'checkout_request_id', 'merchant_request_id')
    readonly_fields = ('gateway_response', 'callback_metadata', 'raw_callback', 'created_at', 'updated_at')
