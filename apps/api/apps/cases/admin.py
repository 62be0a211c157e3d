from django.contrib import admin

from .models import Case, CaseCollaborator, CasePhoto, CollaborationComment, CollaborationRecord


class CaseCollaboratorInline(admin.TabularInline):
    model = CaseCollaborator
    fk_name = 'case'
    extra = 0
    fields = ['vet', 'access_level', 'added_by', 'added_at']
    readonly_fields = ['added_at']


class CasePhotoInline(admin.TabularInline):
    model = CasePhoto
    extra = 0
    fields = ['asset_key', 'description', 'width', 'height', 'uploaded_at']
    readonly_fields = fields


class CollaborationRecordInline(admin.TabularInline):
    model = CollaborationRecord
    extra = 0
    can_delete = False
    fields = ['created_at', 'action', 'performed_by', 'target_vet', 'previous_vet', 'reason']
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Case)
class CaseAdmin(admin.ModelAdmin):
    list_display = ['case_id', 'animal_type', 'priority', 'status', 'assigned_vet', 'is_deleted', 'created_at']
    list_filter = ['status', 'priority', 'age_class', 'is_deleted']
    search_fields = ['case_id', 'animal_type', 'species_scientific_name', 'location']
    # status is derived from assignment and treatments
    readonly_fields = ['id', 'case_id', 'status', 'assigned_at', 'completed_at', 'created_at', 'updated_at']
    inlines = [CaseCollaboratorInline, CasePhotoInline, CollaborationRecordInline]


@admin.register(CollaborationComment)
class CollaborationCommentAdmin(admin.ModelAdmin):
    list_display = ['case', 'author', 'is_private', 'is_system', 'created_at']
    list_filter = ['is_private', 'is_system']
    readonly_fields = ['id', 'created_at']
