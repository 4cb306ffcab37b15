from django.contrib import admin

from . import services
from .models import ProjectIntake, ProjectMessage


class ProjectMessageInline(admin.TabularInline):
    model = ProjectMessage
    extra = 0
    fields = ("created_at", "sender_type", "sender_name", "sender_email", "content", "read_at")
    readonly_fields = ("created_at", "read_at")
    ordering = ("created_at", "id")


@admin.register(ProjectIntake)
class ProjectIntakeAdmin(admin.ModelAdmin):
    list_display = ("project_name", "client_name", "client_email", "status", "unread", "created_at")
    list_filter = ("status",)
    search_fields = ("project_name", "client_name", "client_email")
    raw_id_fields = ("client",)
    inlines = [ProjectMessageInline]
    actions = ["mark_threads_read"]

    @admin.display(description="Unread")
    def unread(self, obj):
        return services.unread_count(obj.pk)

    @admin.action(description="Mark client messages as read")
    def mark_threads_read(self, request, queryset):
        updated = sum(services.mark_read(intake.pk) for intake in queryset)
        self.message_user(request, f"Marked {updated} message(s) as read.")


@admin.register(ProjectMessage)
class ProjectMessageAdmin(admin.ModelAdmin):
    list_display = ("intake", "sender_type", "sender_email", "created_at", "read_at")
    list_filter = ("sender_type", ("read_at", admin.EmptyFieldListFilter))
    search_fields = ("content", "sender_email", "intake__project_name")
    readonly_fields = ("read_at",)
