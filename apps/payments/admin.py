from django.contrib import admin, messages

from apps.bookings.exceptions import BookingEngineError

from .models import Payment, TransactionStatus
from .workflow import verify_payment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = [
        'transaction_id', 'booking', 'amount', 'currency', 'status', 'completed_at', 'created_at'
    ]
    list_filter = ['status', 'method']
    search_fields = ['transaction_id', 'payer_phone', 'booking__client__username']
    readonly_fields = [
        'id', 'booking', 'transaction_id', 'amount', 'currency', 'method', 'payer_phone',
        'status', 'gateway_response', 'completed_at', 'created_at', 'updated_at'
    ]
    actions = ['verify_action']
    fieldsets = (
        ('Payment', {'fields': ('id', 'booking', 'amount', 'currency', 'status', 'completed_at')}),
        ('Telebirr', {'fields': ('transaction_id', 'method', 'payer_phone')}),
        ('Gateway', {'fields': ('gateway_response',), 'classes': ('collapse',)}),
        ('Audit', {'fields': ('created_at', 'updated_at'), 'classes': ('collapse',)}),
    )

    @admin.action(description='Verify with Telebirr')
    def verify_action(self, request, queryset):
        for payment in queryset.filter(status=TransactionStatus.PENDING):
            try:
                result = verify_payment(payment.transaction_id)
            except BookingEngineError as exc:
                self.message_user(request, f'{payment.transaction_id}: {exc}', level=messages.ERROR)
            else:
                self.message_user(request, f'{payment.transaction_id}: {result}')
