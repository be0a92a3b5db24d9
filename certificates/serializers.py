# certificates/serializers.py
from rest_framework import serializers
from .models import Certificate

class CertificateSerializer(serializers.ModelSerializer):
    # Readable names from the related user and course
    candidate_name = serializers.CharField(source='user.display_name', read_only=True)
    candidate_email = serializers.CharField(source='user.email', read_only=True)
    course_title = serializers.CharField(source='course.title', read_only=True)
    has_pdf = serializers.SerializerMethodField()

    class Meta:
        model = Certificate
        fields = [
            'id',
            'certificate_number',
            'verification_code',
            'candidate_name',
            'candidate_email',
            'course',
            'course_title',
            'attempt',
            'score',
            'grade',
            'issued_at',
            'valid_until',
            'has_pdf',
            'is_revoked',
            'revoked_at',
            'revoked_reason',
            'verification_url',
        ]

    def get_has_pdf(self, obj):
        return bool(obj.pdf_path)

class PublicCertificateSerializer(serializers.ModelSerializer):
    """What anyone holding the certificate number may see."""
    holder_name = serializers.CharField(source='user.display_name', read_only=True)
    course_title = serializers.CharField(source='course.title', read_only=True)

    class Meta:
        model = Certificate
        fields = ['certificate_number', 'holder_name', 'course_title', 'score', 'grade', 'issued_at', 'valid_until']

class RevokeSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=1000)
