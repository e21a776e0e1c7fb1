from django.urls import path

from .views import RestaurantSettingsViewSet

app_name = "settings"

urlpatterns = [
    path(
        "restaurant/",
        RestaurantSettingsViewSet.as_view({"get": "retrieve", "patch": "partial_update"}),
        name="restaurant-settings",
    ),
]
