import uuid
from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('cases', '0001_initial'),
        ('medications', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Treatment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('treatment_id', models.CharField(editable=False, max_length=20, unique=True, verbose_name='Treatment ID')),
                ('treatment_type', models.CharField(choices=[('Medical', 'Medical'), ('Surgical', 'Surgical'), ('Emergency', 'Emergency'), ('Rehabilitation', 'Rehabilitation'), ('Preventive', 'Preventive')], max_length=20, verbose_name='Treatment Type')),
                ('treatment_date', models.DateTimeField(default=django.utils.timezone.now, verbose_name='Treatment Date')),
                ('diagnosis', models.TextField(verbose_name='Diagnosis')),
                ('treatment_plan', models.TextField(verbose_name='Treatment Plan')),
                ('vital_signs', models.JSONField(blank=True, default=dict, help_text='temperature, heart_rate, respiratory_rate, blood_pressure, weight, recorded_at', verbose_name='Vital Signs')),
                ('status', models.CharField(choices=[('Planned', 'Planned'), ('In Progress', 'In Progress'), ('Completed', 'Completed'), ('Cancelled', 'Cancelled'), ('Follow-up Required', 'Follow-up Required')], default='Planned', max_length=20, verbose_name='Status')),
                ('outcome', models.CharField(choices=[('Successful', 'Successful'), ('Partially Successful', 'Partially Successful'), ('Unsuccessful', 'Unsuccessful'), ('Ongoing', 'Ongoing')], default='Ongoing', max_length=25, verbose_name='Outcome')),
                ('recovery_notes', models.TextField(blank=True, verbose_name='Recovery Notes')),
                ('follow_up_date', models.DateField(blank=True, null=True, verbose_name='Follow-up Date')),
                ('complications', models.TextField(blank=True, verbose_name='Complications')),
                ('notes', models.TextField(blank=True, verbose_name='Notes')),
                ('medication_cost', models.DecimalField(decimal_places=2, default=Decimal('0.00'), editable=False, max_digits=12)),
                ('procedure_cost', models.DecimalField(decimal_places=2, default=Decimal('0.00'), editable=False, max_digits=12)),
                ('total_cost', models.DecimalField(decimal_places=2, default=Decimal('0.00'), editable=False, max_digits=12)),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
                ('assigned_vet', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='treatments', to=settings.AUTH_USER_MODEL)),
                ('case', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='treatments', to='cases.case')),
            ],
            options={
                'verbose_name': 'Treatment',
                'verbose_name_plural': 'Treatments',
                'db_table': 'treatments',
                'ordering': ['-treatment_date'],
                'indexes': [
                    models.Index(fields=['case', 'status'], name='idx_treatment_case_status'),
                    models.Index(fields=['assigned_vet'], name='idx_treatment_vet'),
                    models.Index(fields=['-treatment_date'], name='idx_treatment_date'),
                ],
            },
        ),
        migrations.CreateModel(
            name='TreatmentMedication',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('position', models.PositiveIntegerField(default=0)),
                ('name', models.CharField(help_text='Medication name at time of use', max_length=255)),
                ('quantity', models.PositiveIntegerField()),
                ('dosage', models.CharField(max_length=100)),
                ('frequency', models.CharField(max_length=100)),
                ('duration', models.CharField(max_length=100)),
                ('notes', models.TextField(blank=True)),
                ('unit_cost', models.DecimalField(decimal_places=2, max_digits=10)),
                ('is_correction', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('medication', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='treatment_entries', to='medications.medication')),
                ('treatment', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='medications', to='treatments.treatment')),
                ('usage', models.OneToOneField(on_delete=django.db.models.deletion.PROTECT, related_name='treatment_entry', to='medications.medicationusage')),
            ],
            options={
                'db_table': 'treatment_medications',
                'ordering': ['position', 'created_at'],
            },
        ),
        migrations.CreateModel(
            name='TreatmentProcedure',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('position', models.PositiveIntegerField(default=0)),
                ('name', models.CharField(max_length=255)),
                ('description', models.TextField()),
                ('duration', models.CharField(blank=True, max_length=100)),
                ('cost', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('complications', models.TextField(blank=True)),
                ('success_rate', models.CharField(blank=True, max_length=50)),
                ('treatment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='procedures', to='treatments.treatment')),
            ],
            options={
                'db_table': 'treatment_procedures',
                'ordering': ['position'],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('cost__gte', 0)), name='procedure_cost_non_negative'),
                ],
            },
        ),
        migrations.CreateModel(
            name='TreatmentImage',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('asset_key', models.CharField(max_length=500)),
                ('url', models.URLField(max_length=1000)),
                ('description', models.CharField(blank=True, max_length=500)),
                ('image_type', models.CharField(choices=[('before', 'Before'), ('during', 'During'), ('after', 'After'), ('xray', 'X-ray'), ('scan', 'Scan'), ('other', 'Other')], default='other', max_length=10)),
                ('width', models.PositiveIntegerField(blank=True, null=True)),
                ('height', models.PositiveIntegerField(blank=True, null=True)),
                ('file_size', models.PositiveIntegerField(blank=True, null=True)),
                ('uploaded_at', models.DateTimeField(auto_now_add=True)),
                ('treatment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='images', to='treatments.treatment')),
                ('uploaded_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'treatment_images',
                'ordering': ['uploaded_at'],
            },
        ),
    ]
