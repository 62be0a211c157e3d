import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Case',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('case_id', models.CharField(editable=False, max_length=20, unique=True, verbose_name='Case ID')),
                ('animal_type', models.CharField(max_length=100, verbose_name='Animal Type')),
                ('species_scientific_name', models.CharField(max_length=200, verbose_name='Scientific Name')),
                ('age_class', models.CharField(choices=[('Adult', 'Adult'), ('Juvenile', 'Juvenile'), ('Calf', 'Calf')], max_length=20, verbose_name='Age Class')),
                ('gender', models.CharField(choices=[('Male', 'Male'), ('Female', 'Female'), ('Unknown', 'Unknown')], max_length=10, verbose_name='Gender')),
                ('priority', models.CharField(choices=[('Low', 'Low'), ('Medium', 'Medium'), ('High', 'High')], default='Medium', max_length=10, verbose_name='Priority')),
                ('location', models.CharField(max_length=500, verbose_name='Location')),
                ('reported_by', models.CharField(max_length=255, verbose_name='Reported By')),
                ('primary_condition', models.CharField(max_length=500, verbose_name='Primary Condition')),
                ('symptoms_observations', models.TextField(verbose_name='Symptoms / Observations')),
                ('initial_treatment_plan', models.TextField(verbose_name='Initial Treatment Plan')),
                ('additional_notes', models.TextField(blank=True, verbose_name='Additional Notes')),
                ('estimated_recovery_time', models.CharField(blank=True, max_length=100, verbose_name='Estimated Recovery Time')),
                ('status', models.CharField(choices=[('Unassigned', 'Unassigned'), ('Assigned', 'Assigned'), ('In Progress', 'In Progress'), ('Completed', 'Completed')], default='Unassigned', max_length=20, verbose_name='Status')),
                ('assigned_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('is_deleted', models.BooleanField(default=False)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
                ('assigned_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('assigned_vet', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='assigned_cases', to=settings.AUTH_USER_MODEL)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_cases', to=settings.AUTH_USER_MODEL)),
                ('deleted_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Animal Case',
                'verbose_name_plural': 'Animal Cases',
                'db_table': 'animal_cases',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status', '-created_at'], name='idx_case_status'),
                    models.Index(fields=['assigned_vet', 'status'], name='idx_case_vet_status'),
                    models.Index(fields=['priority'], name='idx_case_priority'),
                    models.Index(fields=['is_deleted'], name='idx_case_deleted'),
                ],
            },
        ),
        migrations.CreateModel(
            name='CaseCollaborator',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('access_level', models.CharField(choices=[('view', 'View'), ('edit', 'Edit'), ('full', 'Full')], default='view', max_length=10)),
                ('added_at', models.DateTimeField(auto_now_add=True)),
                ('added_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('case', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='collaborators', to='cases.case')),
                ('vet', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='case_collaborations', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'animal_case_collaborators',
                'ordering': ['added_at'],
                'constraints': [models.UniqueConstraint(fields=('case', 'vet'), name='unique_case_collaborator')],
            },
        ),
        migrations.AddField(
            model_name='case',
            name='collaborating_vets',
            field=models.ManyToManyField(blank=True, related_name='collaborating_cases', through='cases.CaseCollaborator', through_fields=('case', 'vet'), to=settings.AUTH_USER_MODEL),
        ),
        migrations.CreateModel(
            name='CasePhoto',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('asset_key', models.CharField(max_length=500)),
                ('url', models.URLField(max_length=1000)),
                ('description', models.CharField(blank=True, max_length=500)),
                ('width', models.PositiveIntegerField(blank=True, null=True)),
                ('height', models.PositiveIntegerField(blank=True, null=True)),
                ('file_size', models.PositiveIntegerField(blank=True, null=True)),
                ('uploaded_at', models.DateTimeField(auto_now_add=True)),
                ('case', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='photos', to='cases.case')),
                ('uploaded_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'animal_case_photos',
                'ordering': ['uploaded_at'],
            },
        ),
        migrations.CreateModel(
            name='CollaborationComment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('text', models.TextField()),
                ('is_private', models.BooleanField(default=False)),
                ('is_system', models.BooleanField(default=False, help_text='Generated by a case operation')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('author', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='case_comments', to=settings.AUTH_USER_MODEL)),
                ('case', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='comments', to='cases.case')),
            ],
            options={
                'db_table': 'animal_case_comments',
                'ordering': ['created_at', 'id'],
                'indexes': [models.Index(fields=['case', 'created_at'], name='idx_comment_case')],
            },
        ),
        migrations.CreateModel(
            name='CollaborationRecord',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('action', models.CharField(choices=[('shared', 'Shared'), ('transferred', 'Transferred'), ('collaboration_removed', 'Collaboration Removed')], max_length=30)),
                ('access_level', models.CharField(blank=True, choices=[('view', 'View'), ('edit', 'Edit'), ('full', 'Full')], max_length=10)),
                ('reason', models.TextField(blank=True)),
                ('message', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('case', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='history', to='cases.case')),
                ('performed_by', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('previous_vet', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('target_vet', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'animal_case_collaboration_history',
                'ordering': ['created_at', 'id'],
                'indexes': [models.Index(fields=['case', 'created_at'], name='idx_history_case')],
            },
        ),
    ]
