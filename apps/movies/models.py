# ==========================================
# apps/movies/models.py
# ==========================================

from django.db import models
import uuid


class Movie(models.Model):
    """
    Local copy of a catalog movie.

    Rows are written by the catalog integration; this project only reads
    them to enrich activity entries.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tmdb_id = models.PositiveIntegerField(unique=True)
    title = models.CharField(max_length=300)
    year = models.PositiveSmallIntegerField(null=True, blank=True)
    poster_path = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'movies'
        ordering = ['title']

    def __str__(self):
        if self.year:
            return f"{self.title} ({self.year})"
        return self.title
