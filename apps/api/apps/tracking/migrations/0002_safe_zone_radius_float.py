from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('tracking', '0001_initial'),
    ]

    operations = [
        migrations.AlterField(
            model_name='trackingstate',
            name='safe_zone_radius',
            field=models.FloatField(blank=True, help_text='meters', null=True),
        ),
    ]
