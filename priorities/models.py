from django.db import models

class StoredCollection(models.Model):
    """One JSON-encoded collection stored under a stable key."""
    key        = models.CharField(max_length=100, primary_key=True)
    value      = models.TextField(default="[]")
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.key
