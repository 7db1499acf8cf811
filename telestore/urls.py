from django.contrib import admin
from django.urls import path

urlpatterns = [
    # Tracked files are browsed and forgotten through the admin
    path('admin/', admin.site.urls),
]
