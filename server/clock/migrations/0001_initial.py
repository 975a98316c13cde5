from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="TournamentSession",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(default="Tournament", max_length=255)),
                ("status", models.CharField(
                    choices=[
                        ("NOT_STARTED", "Not started"),
                        ("ACTIVE", "Active"),
                        ("COMPLETED", "Completed"),
                        ("CANCELLED", "Cancelled"),
                    ],
                    default="NOT_STARTED",
                    max_length=20,
                )),
                ("current_level_index", models.PositiveIntegerField(default=0)),
                ("level_start_time", models.DateTimeField(blank=True, null=True)),
                ("registration_closed", models.BooleanField(default=False)),
                ("buy_in", models.PositiveIntegerField(default=0)),
                ("total_entries", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "clock_tournament_session",
                "ordering": ["-created_at"],
            },
        ),
    ]
