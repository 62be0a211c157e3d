import uuid

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('cases', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Medication',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('medication_id', models.CharField(editable=False, max_length=20, unique=True, verbose_name='Medication ID')),
                ('name', models.CharField(max_length=255, verbose_name='Name')),
                ('generic_name', models.CharField(blank=True, max_length=255, verbose_name='Generic Name')),
                ('description', models.TextField(verbose_name='Description')),
                ('category', models.CharField(choices=[('Antibiotic', 'Antibiotic'), ('Painkiller', 'Painkiller'), ('Anti-inflammatory', 'Anti-inflammatory'), ('Anesthetic', 'Anesthetic'), ('Vaccine', 'Vaccine'), ('Supplement', 'Supplement'), ('Other', 'Other')], max_length=30, verbose_name='Category')),
                ('form', models.CharField(choices=[('Tablet', 'Tablet'), ('Capsule', 'Capsule'), ('Liquid', 'Liquid'), ('Injection', 'Injection'), ('Topical', 'Topical'), ('Powder', 'Powder'), ('Other', 'Other')], max_length=20, verbose_name='Form')),
                ('strength', models.CharField(help_text='e.g. 500mg, 10ml', max_length=50, verbose_name='Strength')),
                ('quantity', models.PositiveIntegerField(default=0, verbose_name='Quantity')),
                ('initial_quantity', models.PositiveIntegerField(default=0, editable=False, verbose_name='Initial Quantity')),
                ('unit', models.CharField(choices=[('tablets', 'Tablets'), ('capsules', 'Capsules'), ('ml', 'Millilitres'), ('bottles', 'Bottles'), ('vials', 'Vials'), ('ampules', 'Ampules'), ('grams', 'Grams'), ('kg', 'Kilograms'), ('units', 'Units')], max_length=20, verbose_name='Unit')),
                ('threshold', models.PositiveIntegerField(default=0, verbose_name='Reorder Threshold')),
                ('batch_number', models.CharField(max_length=100, verbose_name='Batch Number')),
                ('manufacturing_date', models.DateField(verbose_name='Manufacturing Date')),
                ('expiry_date', models.DateField(verbose_name='Expiry Date')),
                ('manufacturer', models.CharField(max_length=255, verbose_name='Manufacturer')),
                ('supplier_name', models.CharField(blank=True, max_length=255, verbose_name='Supplier Name')),
                ('supplier_email', models.EmailField(blank=True, max_length=254, verbose_name='Supplier Email')),
                ('supplier_phone', models.CharField(blank=True, max_length=50, verbose_name='Supplier Phone')),
                ('cost_per_unit', models.DecimalField(decimal_places=2, max_digits=10, verbose_name='Cost Per Unit')),
                ('storage_conditions', models.JSONField(blank=True, default=dict, help_text='temperature, humidity, special handling', verbose_name='Storage Conditions')),
                ('is_active', models.BooleanField(default=True, verbose_name='Active')),
                ('alert_low_stock', models.BooleanField(default=False, editable=False)),
                ('alert_near_expiry', models.BooleanField(default=False, editable=False)),
                ('alert_expired', models.BooleanField(default=False, editable=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
            ],
            options={
                'verbose_name': 'Medication',
                'verbose_name_plural': 'Medications',
                'db_table': 'medications',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['name'], name='idx_medication_name'),
                    models.Index(fields=['category'], name='idx_medication_category'),
                    models.Index(fields=['expiry_date'], name='idx_medication_expiry'),
                    models.Index(fields=['alert_low_stock'], name='idx_medication_low_stock'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('quantity__gte', 0)), name='medication_quantity_non_negative'),
                ],
            },
        ),
        migrations.CreateModel(
            name='MedicationUsage',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('kind', models.CharField(choices=[('dispensed', 'Dispensed'), ('compensation', 'Compensation')], default='dispensed', max_length=20)),
                ('quantity', models.IntegerField(help_text='Positive when dispensed, negative when compensated')),
                ('treatment_reference', models.CharField(blank=True, help_text='Human-readable treatment id (TRT-xxxxx) the debit was made for', max_length=20)),
                ('unit_cost', models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ('notes', models.TextField(blank=True)),
                ('used_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('case', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='medication_usage', to='cases.case')),
                ('compensates', models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='compensation', to='medications.medicationusage')),
                ('medication', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='usage_log', to='medications.medication')),
                ('veterinarian', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='medication_usage', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'medication_usage',
                'ordering': ['used_at'],
                'indexes': [
                    models.Index(fields=['medication', 'used_at'], name='idx_usage_medication'),
                    models.Index(fields=['treatment_reference'], name='idx_usage_treatment_ref'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('quantity', 0), _negated=True), name='medication_usage_quantity_non_zero'),
                ],
            },
        ),
        migrations.CreateModel(
            name='RestockRequest',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('quantity_requested', models.PositiveIntegerField()),
                ('priority', models.CharField(choices=[('Low', 'Low'), ('Medium', 'Medium'), ('High', 'High'), ('Urgent', 'Urgent')], default='Medium', max_length=10)),
                ('reason', models.TextField(blank=True)),
                ('status', models.CharField(choices=[('Pending', 'Pending'), ('Approved', 'Approved'), ('Rejected', 'Rejected')], default='Pending', max_length=10)),
                ('requested_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('resolved_at', models.DateTimeField(blank=True, null=True)),
                ('resolution_notes', models.TextField(blank=True)),
                ('received_at', models.DateTimeField(blank=True, null=True)),
                ('medication', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='restock_requests', to='medications.medication')),
                ('received_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='received_restock_requests', to=settings.AUTH_USER_MODEL)),
                ('requested_by', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='restock_requests', to=settings.AUTH_USER_MODEL)),
                ('resolved_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='resolved_restock_requests', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'medication_restock_requests',
                'ordering': ['-requested_at'],
                'indexes': [
                    models.Index(fields=['status', 'priority'], name='idx_restock_status_priority'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('quantity_requested__gt', 0)), name='restock_quantity_positive'),
                    models.CheckConstraint(condition=models.Q(('received_at__isnull', True), ('status', 'Approved'), _connector='OR'), name='restock_received_only_if_approved'),
                ],
            },
        ),
    ]
