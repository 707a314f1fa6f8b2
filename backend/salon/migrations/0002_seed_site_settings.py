from django.db import migrations


def seed_site_settings(apps, schema_editor):
    SiteSettings = apps.get_model("salon", "SiteSettings")
    SiteSettings.objects.get_or_create(id=1)


class Migration(migrations.Migration):
    dependencies = [
        ("salon", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(seed_site_settings, migrations.RunPython.noop),
    ]
