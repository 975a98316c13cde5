from django.urls import path
from .session_views import (
    SessionBlindsView,
    SessionDetailView,
    SessionLevelView,
    SessionListView,
    SessionPayoutsView,
    SessionTransitionView,
    StopRegistrationView,
)

urlpatterns = [
    path("clock/api/sessions/", SessionListView.as_view(), name="session-list"),
    path("clock/api/sessions/<int:pk>/", SessionDetailView.as_view(), name="session-detail"),
    path("clock/api/sessions/<int:pk>/blinds/", SessionBlindsView.as_view(), name="session-blinds"),
    path("clock/api/sessions/<int:pk>/level/", SessionLevelView.as_view(), name="session-level"),
    path("clock/api/sessions/<int:pk>/transition/", SessionTransitionView.as_view(), name="session-transition"),
    path("clock/api/sessions/<int:pk>/stop-registration/", StopRegistrationView.as_view(), name="session-stop-registration"),
    path("clock/api/sessions/<int:pk>/payouts/", SessionPayoutsView.as_view(), name="session-payouts"),
]
