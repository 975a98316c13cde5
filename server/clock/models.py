from django.db import models


class TournamentSession(models.Model):
    """A tournament session and its authoritative clock state.

    current_level_index and level_start_time only ever change together
    (see clock.advancement).
    """

    STATUS_NOT_STARTED = "NOT_STARTED"
    STATUS_ACTIVE      = "ACTIVE"
    STATUS_COMPLETED   = "COMPLETED"
    STATUS_CANCELLED   = "CANCELLED"

    STATUS_CHOICES = [
        (STATUS_NOT_STARTED, "Not started"),
        (STATUS_ACTIVE,      "Active"),
        (STATUS_COMPLETED,   "Completed"),
        (STATUS_CANCELLED,   "Cancelled"),
    ]

    VALID_TRANSITIONS = {
        STATUS_NOT_STARTED: (STATUS_ACTIVE, STATUS_CANCELLED),
        STATUS_ACTIVE:      (STATUS_COMPLETED, STATUS_CANCELLED),
        STATUS_COMPLETED:   (),
        STATUS_CANCELLED:   (),
    }

    name                = models.CharField(max_length=255, default="Tournament")
    status              = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_NOT_STARTED)
    current_level_index = models.PositiveIntegerField(default=0)
    level_start_time    = models.DateTimeField(null=True, blank=True)
    registration_closed = models.BooleanField(default=False)
    buy_in              = models.PositiveIntegerField(default=0)
    total_entries       = models.PositiveIntegerField(default=0)
    created_at          = models.DateTimeField(auto_now_add=True)
    updated_at          = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "clock_tournament_session"
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.name} ({self.status})"

    def is_active(self) -> bool:
        return self.status == self.STATUS_ACTIVE

    def can_transition_to(self, status: str) -> bool:
        return status in self.VALID_TRANSITIONS.get(self.status, ())

    def to_dict(self) -> dict:
        return {
            "id":                 self.id,
            "name":               self.name,
            "status":             self.status,
            "currentLevelIndex":  self.current_level_index,
            "levelStartTime":     self.level_start_time.isoformat() if self.level_start_time else None,
            "registrationClosed": self.registration_closed,
            "buyIn":              self.buy_in,
            "totalEntries":       self.total_entries,
            "created_at":         self.created_at.isoformat(),
        }
