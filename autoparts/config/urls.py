"""
URL configuration for the autoparts project.

Every app is mounted under api/v1/.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "Autoparts Admin Panel"
admin.site.site_title = "Autoparts Admin Portal"
admin.site.index_title = "Welcome to the Autoparts Admin"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('autoparts.core.urls')),
    path('api/v1/', include('autoparts.catalog.urls')),
    path('api/v1/', include('autoparts.parties.urls')),
    path('api/v1/', include('autoparts.purchasing.urls')),
    path('api/v1/', include('autoparts.sales.urls')),
    path('api/v1/', include('autoparts.reports.urls')),
]
