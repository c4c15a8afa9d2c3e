from django.contrib import admin
from .models import Rating


@admin.register(Rating)
class RatingAdmin(admin.ModelAdmin):
    list_display = ('massager', 'client', 'score', 'created_at')
    list_filter = ('score',)
    search_fields = ('massager__username', 'client__username', 'review')
    readonly_fields = ('id', 'booking', 'client', 'massager', 'score', 'created_at', 'updated_at')
    ordering = ('-created_at',)
