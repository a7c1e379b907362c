from django.urls import include, path

from .playground import api_playground

urlpatterns = [
    path("api/v1/", include("settlement.api.urls")),
    path("playground/", api_playground, name="playground"),
]
