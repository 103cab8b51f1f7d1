from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="StoredCollection",
            fields=[
                ("key", models.CharField(max_length=100, primary_key=True, serialize=False)),
                ("value", models.TextField(default="[]")),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
        ),
    ]
