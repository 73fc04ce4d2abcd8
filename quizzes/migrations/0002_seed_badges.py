from django.db import migrations

TIERS = [
    ("Newbie", 10, "common", "Earned your first points"),
    ("Explorer", 50, "common", "Reached 50 points"),
    ("Achiever", 100, "uncommon", "Reached 100 points"),
    ("Specialist", 250, "rare", "Reached 250 points"),
    ("Expert", 500, "epic", "Reached 500 points"),
    ("Master", 1000, "legendary", "Reached 1000 points"),
]


def seed_badges(apps, schema_editor):
    Badge = apps.get_model("quizzes", "Badge")
    for name, threshold, rarity, description in TIERS:
        Badge.objects.get_or_create(
            name=name,
            defaults={"points_value": threshold, "rarity": rarity, "description": description},
        )


class Migration(migrations.Migration):

    dependencies = [
        ("quizzes", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(seed_badges, migrations.RunPython.noop),
    ]
