"""URL configuration.

Routes the Django admin, the versioned REST API, the OpenAPI schema and
the payment gateway webhook.
"""
from django.contrib import admin  # type: ignore
from django.urls import include, path  # type: ignore
from drf_spectacular.views import SpectacularAPIView  # type: ignore

from apps.finances.views import payment_webhook

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/v1/bookings/', include('apps.bookings.urls')),
    path('api/v1/finances/', include('apps.finances.urls')),
    path('webhooks/payment', payment_webhook, name='payment-webhook'),
]
