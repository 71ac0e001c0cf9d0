"""
Django admin registrations for the core models.

Lets staff inspect doctors, slots, patients and appointments at
``/admin/`` and correct records by hand during operations.
"""

from django.contrib import admin

from .models import (
    Appointment,
    AuditEvent,
    Doctor,
    DoctorAvailableTime,
    Patient,
    User,
)


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'role', 'is_staff', 'is_superuser')
    list_filter = ('role',)
    search_fields = ('username', 'first_name', 'last_name', 'email')


class DoctorAvailableTimeInline(admin.TabularInline):
    model = DoctorAvailableTime
    extra = 0


@admin.register(Doctor)
class DoctorAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'specialty', 'email', 'phone')
    list_filter = ('specialty',)
    search_fields = ('name', 'email', 'phone')
    inlines = [DoctorAvailableTimeInline]


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'email', 'phone')
    search_fields = ('name', 'email', 'phone')


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'doctor', 'patient', 'appointment_time', 'status')
    list_filter = ('status', 'doctor')
    search_fields = ('doctor__name', 'patient__name')
    date_hierarchy = 'appointment_time'


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('created_at', 'action', 'object_type', 'object_id', 'user')
    list_filter = ('action', 'object_type')
    readonly_fields = ('created_at',)
