from rest_framework import serializers


class PrescriptionSerializer(serializers.Serializer):
    appointmentId = serializers.IntegerField(min_value=1)
    medication = serializers.CharField(max_length=500)
    dosage = serializers.CharField(max_length=200)
    doctorNotes = serializers.CharField(required=False, allow_blank=True, max_length=2000)
