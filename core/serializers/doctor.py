import bleach
from rest_framework import serializers

from core.serializers.patient import PHONE_REGEX

SLOT_REGEX = r'^\s*\d{1,2}:\d{2}\s*-\s*\d{1,2}:\d{2}\s*$'


class DoctorCreateSerializer(serializers.Serializer):
    name = serializers.CharField(min_length=3, max_length=100)
    email = serializers.EmailField()
    phone = serializers.RegexField(PHONE_REGEX, error_messages={'invalid': 'phone must be 10 digits'})
    specialty = serializers.CharField(min_length=3, max_length=50)
    bio = serializers.CharField(required=False, allow_blank=True)
    password = serializers.CharField(required=False, allow_blank=True, min_length=6, write_only=True)
    availableTimes = serializers.ListField(
        child=serializers.RegexField(SLOT_REGEX), required=False, allow_empty=True
    )

    def validate_name(self, v):
        return bleach.clean(v.strip(), tags=[], strip=True)

    def validate_bio(self, v):
        return bleach.clean((v or '').strip(), tags=[], strip=True)


class DoctorUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(required=False, min_length=3, max_length=100)
    email = serializers.EmailField(required=False)
    phone = serializers.RegexField(PHONE_REGEX, required=False,
                                   error_messages={'invalid': 'phone must be 10 digits'})
    specialty = serializers.CharField(required=False, min_length=3, max_length=50)
    bio = serializers.CharField(required=False, allow_blank=True)

    def validate_name(self, v):
        return bleach.clean(v.strip(), tags=[], strip=True)

    def validate_bio(self, v):
        return bleach.clean((v or '').strip(), tags=[], strip=True)


class DoctorFilterQuerySerializer(serializers.Serializer):
    name = serializers.CharField(required=False, allow_blank=True)
    specialty = serializers.CharField(required=False, allow_blank=True)
    time = serializers.CharField(required=False, allow_blank=True)


class SlotSerializer(serializers.Serializer):
    timeSlot = serializers.RegexField(SLOT_REGEX, error_messages={'invalid': 'expected HH:MM-HH:MM'})


class AvailabilityQuerySerializer(serializers.Serializer):
    date = serializers.DateField()
