from django.contrib import admin

from .models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("id", "recipient", "category", "title", "is_read", "created_at")
    list_filter = ("category", "is_read")
    search_fields = ("title", "message", "recipient__username")
    raw_id_fields = ("recipient", "case")
