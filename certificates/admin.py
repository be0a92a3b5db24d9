from django.contrib import admin

from .models import Certificate


@admin.register(Certificate)
class CertificateAdmin(admin.ModelAdmin):
    list_display = ('certificate_number', 'user', 'course', 'score', 'grade', 'issued_at', 'is_revoked')
    list_filter = ('is_revoked', 'grade')
    search_fields = ('certificate_number', 'user__email')
