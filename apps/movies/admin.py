from django.contrib import admin
from apps.movies.models import Movie


@admin.register(Movie)
class MovieAdmin(admin.ModelAdmin):
    """Admin interface for Movies."""

    list_display = ['title', 'year', 'tmdb_id', 'created_at']
    search_fields = ['title', 'tmdb_id']
    readonly_fields = ['created_at']
    ordering = ['title']
