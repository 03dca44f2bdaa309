"""Django ORM models (persistence layer).

These models handle database concerns. Domain logic lives in domain/models.py.
"""

import uuid

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q
from django.utils import timezone


class Activity(models.Model):
    """Persistence model for catalog activities."""

    class Kind(models.TextChoices):
        WORKSHOP = "workshop", "Workshop"
        COMPETITION = "competition", "Competition"
        TALK = "talk", "Talk"

    id = models.SlugField(primary_key=True, max_length=64)
    title = models.CharField(max_length=255)
    kind = models.CharField(max_length=16, choices=Kind.choices)
    location = models.CharField(max_length=255)
    starts_at = models.DateTimeField()
    ends_at = models.DateTimeField()
    capacity = models.PositiveIntegerField(null=True, blank=True)
    published = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    # Written only by the enrollment store.
    enrolled_count = models.PositiveIntegerField(default=0, editable=False)
    seat_sequence = models.PositiveIntegerField(default=0, editable=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["starts_at"]
        indexes = [
            models.Index(fields=["published", "starts_at"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(capacity__isnull=True) | Q(enrolled_count__lte=F("capacity")),
                name="activity_enrolled_within_capacity",
            ),
        ]

    def __str__(self) -> str:
        return self.title

    def clean(self) -> None:
        if self.starts_at and self.ends_at and self.ends_at <= self.starts_at:
            raise ValidationError({"ends_at": "An activity must end after it starts."})


class Enrollment(models.Model):
    """Persistence model for a student's seat in an activity."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    student_id = models.CharField(max_length=128, db_index=True)
    activity = models.ForeignKey(
        Activity, on_delete=models.CASCADE, related_name="enrollments"
    )
    seat_number = models.CharField(max_length=300)
    attendance_token = models.CharField(max_length=64, unique=True)
    attended = models.BooleanField(default=False)
    attended_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["activity", "seat_number"], name="enrollment_unique_seat"
            ),
            models.UniqueConstraint(
                fields=["activity", "student_id"], name="enrollment_unique_student"
            ),
        ]

    def __str__(self) -> str:
        return f"{self.student_id} - {self.activity_id} ({self.seat_number})"
