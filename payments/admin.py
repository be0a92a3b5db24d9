from django.contrib import admin

from .models import Application, Payment


@admin.register(Application)
class ApplicationAdmin(admin.ModelAdmin):
    list_display = ('user', 'course', 'status', 'payment_status', 'scheduled_at')
    list_filter = ('status', 'payment_status')


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ('user', 'course', 'amount', 'reference', 'status', 'verified_at')
    list_filter = ('status', 'provider')
