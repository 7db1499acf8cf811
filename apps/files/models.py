from django.db import models


class TrackedFile(models.Model):
    """
    Represents a file stored in the Telegram chat.
    The actual file content is not stored in the database, only the remote
    file ids needed to fetch and reassemble it.
    """
    file_id = models.CharField(max_length=255, db_index=True) # First (or only) Telegram file_id
    path = models.CharField(max_length=1024, unique=True)
    file_name = models.CharField(max_length=255, blank=True, null=True)
    mime_type = models.CharField(max_length=255, blank=True, null=True)
    size = models.PositiveBigIntegerField(blank=True, null=True)
    caption = models.TextField(blank=True, null=True)
    # Overflow fields: chunk_count, chunk_file_ids, original_path, encrypted, checksum
    metadata = models.JSONField(default=dict, blank=True)
    is_chunked = models.BooleanField(default=False, db_index=True)
    is_encrypted = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "telestore_files"
        verbose_name = "Tracked file"
        verbose_name_plural = "Tracked files"
        ordering = ['path']

    def __str__(self):
        return f"{self.path} ({self.chunk_count} chunk{'s' if self.chunk_count != 1 else ''})"

    @property
    def chunk_file_ids(self):
        return self.metadata.get('chunk_file_ids') or [self.file_id]

    @property
    def chunk_count(self):
        return len(self.chunk_file_ids)
