import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='PlatformSetting',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('site_name', models.CharField(default='CertExam', max_length=100)),
                ('support_email', models.EmailField(default='support@certexam.local', max_length=254)),
                ('require_payment', models.BooleanField(default=True, help_text="Require a completed payment before a paid course's exam can be opened")),
                ('violation_limit', models.PositiveIntegerField(default=3, help_text='Proctoring violations that terminate a session')),
                ('expiry_grace_minutes', models.PositiveIntegerField(default=10, help_text='Minutes allowed past the exam duration before a session is expired')),
                ('certificate_validity_days', models.PositiveIntegerField(default=365)),
                ('certificate_signer_name', models.CharField(default='Director of Studies', max_length=100)),
                ('certificate_signer_title', models.CharField(default='Registrar', max_length=100)),
            ],
        ),
        migrations.CreateModel(
            name='AuditLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(choices=[('SESSION_TERMINATED', 'Session Terminated'), ('INTEGRITY_WARNING', 'Integrity Warning'), ('CERTIFICATE', 'Certificate Issued'), ('REVOKE', 'Certificate Revoked'), ('SETTINGS', 'Settings Changed')], max_length=30)),
                ('target_model', models.CharField(help_text='e.g., ExamSession, Certificate', max_length=50)),
                ('target_object_id', models.CharField(blank=True, max_length=100, null=True)),
                ('details', models.TextField(blank=True)),
                ('ip_address', models.GenericIPAddressField(blank=True, null=True)),
                ('timestamp', models.DateTimeField(auto_now_add=True)),
                ('actor', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audit_logs', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-timestamp'],
            },
        ),
    ]
