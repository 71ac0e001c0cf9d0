import bleach
from rest_framework import serializers

PHONE_REGEX = r'^\d{10}$'


class PatientRegisterSerializer(serializers.Serializer):
    name = serializers.CharField(min_length=3, max_length=100)
    email = serializers.EmailField()
    phone = serializers.RegexField(PHONE_REGEX, error_messages={'invalid': 'phone must be 10 digits'})
    address = serializers.CharField(required=False, allow_blank=True, max_length=255)
    password = serializers.CharField(required=False, allow_blank=True, min_length=6, write_only=True)

    def validate_name(self, v):
        v = bleach.clean((v or '').strip(), tags=[], strip=True)
        if len(v) < 3:
            raise serializers.ValidationError('name must be at least 3 characters')
        return v

    def validate_address(self, v):
        return bleach.clean((v or '').strip(), tags=[], strip=True)


class PatientAppointmentsQuerySerializer(serializers.Serializer):
    condition = serializers.ChoiceField(choices=['past', 'future'], required=False)
    doctorName = serializers.CharField(required=False, allow_blank=True)
