from django.contrib import admin
from .models import TrackedFile


@admin.register(TrackedFile)
class TrackedFileAdmin(admin.ModelAdmin):
    list_display = ['path', 'file_name', 'size', 'is_chunked', 'is_encrypted', 'chunk_count', 'updated_at']
    list_filter = ['is_chunked', 'is_encrypted', 'mime_type']
    search_fields = ['path', 'file_name', 'caption']
    # Records are written by FileService only; deleting one forgets the file
    readonly_fields = ['file_id', 'path', 'file_name', 'mime_type', 'size', 'metadata',
                       'is_chunked', 'is_encrypted', 'created_at', 'updated_at']

    fieldsets = (
        ('File Information', {
            'fields': ('path', 'file_name', 'mime_type', 'size', 'caption')
        }),
        ('Storage Details', {
            'fields': ('file_id', 'is_chunked', 'metadata')
        }),
        ('Encryption', {
            'fields': ('is_encrypted',),
            'classes': ('collapse',)
        }),
        ('Metadata', {
            'fields': ('created_at', 'updated_at')
        }),
    )

    def has_add_permission(self, request):
        return False

    def chunk_count(self, obj):
        return obj.chunk_count
    chunk_count.short_description = 'Chunks'
