from django.contrib import admin
from .models import MassagerProfile, AvailabilitySlot


class AvailabilitySlotInline(admin.TabularInline):
    model = AvailabilitySlot
    extra = 1


@admin.register(MassagerProfile)
class MassagerProfileAdmin(admin.ModelAdmin):
    list_display = [
        'user', 'location', 'hourly_rate', 'rating_average', 'rating_count',
        'completed_sessions', 'is_available',
    ]
    list_filter = ['is_available']
    search_fields = ['user__username', 'user__first_name', 'user__phone', 'specialties', 'location']
    list_editable = ['is_available']
    readonly_fields = ['id', 'rating_average', 'rating_count', 'completed_sessions', 'created_at', 'updated_at']
    inlines = [AvailabilitySlotInline]
    fieldsets = (
        ('Massager', {'fields': ('id', 'user', 'bio', 'specialties', 'location', 'experience_years')}),
        ('Pricing', {'fields': ('hourly_rate', 'is_available')}),
        ('Reputation', {'fields': ('rating_average', 'rating_count', 'completed_sessions')}),
        ('Audit', {'fields': ('created_at', 'updated_at'), 'classes': ('collapse',)}),
    )


@admin.register(AvailabilitySlot)
class AvailabilitySlotAdmin(admin.ModelAdmin):
    list_display = ['profile', 'weekday', 'start_time', 'end_time', 'is_open']
    list_filter = ['weekday', 'is_open']
    search_fields = ['profile__user__username']
