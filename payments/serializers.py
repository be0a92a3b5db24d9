from rest_framework import serializers
from .models import Application, Payment


class PaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Payment
        fields = ['id', 'amount', 'reference', 'provider', 'status', 'created_at', 'verified_at']


class ApplicationSerializer(serializers.ModelSerializer):
    course_title = serializers.CharField(source='course.title', read_only=True)
    payments = PaymentSerializer(many=True, read_only=True)

    class Meta:
        model = Application
        fields = [
            'id', 'course', 'course_title', 'status', 'payment_status',
            'amount', 'currency', 'scheduled_at', 'created_at', 'payments'
        ]
        read_only_fields = fields


class ApplySerializer(serializers.Serializer):
    course_id = serializers.IntegerField()


class VerifyPaymentSerializer(serializers.Serializer):
    application_id = serializers.IntegerField()
    reference = serializers.CharField(max_length=100)


class ScheduleSerializer(serializers.Serializer):
    scheduled_at = serializers.DateTimeField()
