"""
URL configuration for user lookup endpoints.

URL structure:
    /api/v1/users/me/           - Current user
    /api/v1/users/search/?q=    - Username search
    /api/v1/users/{id}/         - User by id
"""

from django.urls import path

from authentication.views import CurrentUserView, UserDetailView, UserSearchView

app_name = "users"

urlpatterns = [
    path("me/", CurrentUserView.as_view(), name="me"),
    path("search/", UserSearchView.as_view(), name="search"),
    path("<int:user_id>/", UserDetailView.as_view(), name="detail"),
]
