from django.contrib import admin
from notifications.models import Notification

@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('kind', 'recipient', 'user', 'sent', 'created_at')
    list_filter = ('kind', 'sent', 'created_at')
    search_fields = ('recipient', 'user__name', 'message')
