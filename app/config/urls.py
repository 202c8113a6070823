"""
URL configuration for the bookkeeping project.

URL Structure:
    /admin/   - Django admin interface (read-only views of bookkeeping data)
    /health/  - Health check endpoint (for load balancers, Docker)

Bookkeeping operations are exposed as Python services (bookkeeping.services);
there is no public HTTP API.
"""

from django.contrib import admin
from django.urls import path

from core.views import health_check

urlpatterns = [
    path("admin/", admin.site.urls),
    path("health/", health_check, name="health_check"),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Bookkeeping Admin"
admin.site.site_title = "Bookkeeping"
admin.site.index_title = "Accounts, entries and receivables"
