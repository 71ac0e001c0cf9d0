from rest_framework import serializers

from core.models import AppointmentStatus


class BookAppointmentSerializer(serializers.Serializer):
    doctorId = serializers.IntegerField(min_value=1)
    patientId = serializers.IntegerField(min_value=1, required=False)
    appointmentTime = serializers.DateTimeField()
    notes = serializers.CharField(required=False, allow_blank=True, max_length=2000)


class UpdateAppointmentSerializer(serializers.Serializer):
    appointmentTime = serializers.DateTimeField(required=False)
    status = serializers.ChoiceField(choices=AppointmentStatus.choices, required=False)
    notes = serializers.CharField(required=False, allow_blank=True, max_length=2000)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError('nothing to update')
        return attrs


class AppointmentSearchQuerySerializer(serializers.Serializer):
    doctorId = serializers.IntegerField(required=False, min_value=1)
    patientId = serializers.IntegerField(required=False, min_value=1)
    patientName = serializers.CharField(required=False, allow_blank=True)
    doctorName = serializers.CharField(required=False, allow_blank=True)
    start = serializers.DateTimeField(required=False)
    end = serializers.DateTimeField(required=False)
    status = serializers.ChoiceField(choices=AppointmentStatus.choices, required=False)
    upcoming = serializers.BooleanField(required=False, default=False)

    def validate(self, attrs):
        start, end = attrs.get('start'), attrs.get('end')
        if start and end and end <= start:
            raise serializers.ValidationError('end must be after start')
        return attrs


class DoctorDayQuerySerializer(serializers.Serializer):
    date = serializers.DateField()
    patientName = serializers.CharField(required=False, allow_blank=True)


class DoctorUpcomingQuerySerializer(serializers.Serializer):
    patientName = serializers.CharField(required=False, allow_blank=True)
