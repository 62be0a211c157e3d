from django.contrib import admin
from .models import Sequence


@admin.register(Sequence)
class SequenceAdmin(admin.ModelAdmin):
    list_display = ['name', 'last_value', 'updated_at']
    search_fields = ['name']
    readonly_fields = ['name', 'last_value', 'updated_at']
