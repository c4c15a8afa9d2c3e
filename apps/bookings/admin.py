from django.contrib import admin, messages

from apps.payments.workflow import confirm_payment_manually, refund_payment

from .exceptions import BookingEngineError
from .lifecycle import set_booking_status
from .models import Booking, BookingStatus, BookingStatusLog, ScheduleLock


class BookingStatusLogInline(admin.TabularInline):
    model = BookingStatusLog
    extra = 0
    readonly_fields = ['from_status', 'to_status', 'changed_by', 'reason', 'changed_at']
    can_delete = False


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = [
        'short_id', 'client', 'massager', 'service_date', 'start_time', 'end_time',
        'status', 'payment_status', 'total_amount',
    ]
    list_filter = ['status', 'payment_status', 'service_date']
    search_fields = ['client__username', 'client__phone', 'massager__username', 'massager__phone']
    # State fields change only through the workflow actions below.
    readonly_fields = [
        'id', 'client', 'massager', 'service_date', 'start_time', 'end_time', 'duration_minutes',
        'status', 'payment_status', 'total_amount', 'cancellation_reason',
        'payment_confirmed_by', 'payment_confirmed_at', 'contact_shared_at',
        'created_at', 'updated_at',
    ]
    date_hierarchy = 'service_date'
    inlines = [BookingStatusLogInline]
    actions = ['confirm_payment_action', 'refund_payment_action', 'cancel_action']
    fieldsets = (
        ('Booking', {'fields': ('id', 'client', 'massager')}),
        ('Schedule', {'fields': ('service_date', 'start_time', 'end_time', 'duration_minutes')}),
        ('Status', {'fields': ('status', 'payment_status', 'total_amount', 'cancellation_reason')}),
        ('Payment', {'fields': ('payment_confirmed_by', 'payment_confirmed_at', 'contact_shared_at')}),
        ('Audit', {'fields': ('created_at', 'updated_at'), 'classes': ('collapse',)}),
    )

    def has_add_permission(self, request):
        # Bookings are created only through engine.create_booking.
        return False

    def short_id(self, obj):
        return obj.id_short
    short_id.short_description = 'ID'

    def _run(self, request, queryset, operation, done_message):
        done = 0
        for booking in queryset:
            try:
                operation(booking)
                done += 1
            except BookingEngineError as exc:
                self.message_user(request, f'#{booking.id_short}: {exc}', level=messages.ERROR)
        if done:
            self.message_user(request, done_message.format(count=done), level=messages.SUCCESS)

    @admin.action(description='Confirm payment (verified out of band)')
    def confirm_payment_action(self, request, queryset):
        self._run(
            request, queryset,
            lambda b: confirm_payment_manually(b.id, request.user, note='Confirmed from admin'),
            '{count} payment(s) confirmed.',
        )

    @admin.action(description='Refund payment')
    def refund_payment_action(self, request, queryset):
        self._run(
            request, queryset,
            lambda b: refund_payment(b.id, request.user),
            '{count} payment(s) marked refunded.',
        )

    @admin.action(description='Cancel booking')
    def cancel_action(self, request, queryset):
        self._run(
            request, queryset,
            lambda b: set_booking_status(b.id, request.user, BookingStatus.CANCELLED, reason='Cancelled by admin'),
            '{count} booking(s) cancelled.',
        )


@admin.register(ScheduleLock)
class ScheduleLockAdmin(admin.ModelAdmin):
    list_display = ['massager', 'service_date', 'created_at']
    readonly_fields = ['id', 'massager', 'service_date', 'created_at', 'updated_at']
    search_fields = ['massager__username']


@admin.register(BookingStatusLog)
class BookingStatusLogAdmin(admin.ModelAdmin):
    list_display = ['booking', 'from_status', 'to_status', 'changed_by', 'changed_at']
    readonly_fields = ['id', 'booking', 'from_status', 'to_status', 'changed_by', 'reason', 'changed_at']
    search_fields = ['booking__client__username', 'changed_by']
