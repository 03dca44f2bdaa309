from django.contrib import admin

from enrollments.models import Activity, Enrollment


class EnrollmentInline(admin.TabularInline):
    model = Enrollment
    extra = 0
    fields = ["student_id", "seat_number", "attended", "attended_at", "created_at"]
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Activity)
class ActivityAdmin(admin.ModelAdmin):
    list_display = ["title", "kind", "location", "starts_at", "capacity", "enrolled_count", "published"]
    list_filter = ["kind", "published", "is_active"]
    search_fields = ["title", "location"]
    readonly_fields = ["enrolled_count", "seat_sequence"]
    inlines = [EnrollmentInline]


@admin.register(Enrollment)
class EnrollmentAdmin(admin.ModelAdmin):
    list_display = ["student_id", "activity", "seat_number", "attended", "created_at"]
    list_filter = ["activity", "attended"]
    search_fields = ["student_id", "seat_number"]
    readonly_fields = ["attendance_token", "seat_number", "attended", "attended_at", "created_at"]
