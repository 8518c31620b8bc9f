import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='Table',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('number', models.PositiveIntegerField(unique=True)),
                ('capacity', models.PositiveIntegerField(default=2)),
                ('status', models.CharField(choices=[('available', 'Available'), ('occupied', 'Occupied'), ('reserved', 'Reserved')], default='available', max_length=10)),
                ('guest_name', models.CharField(blank=True, max_length=100, null=True)),
                ('guest_phone', models.CharField(blank=True, max_length=30, null=True)),
                ('party_size', models.PositiveIntegerField(blank=True, null=True)),
                ('occupied_at', models.DateTimeField(blank=True, null=True)),
                ('waiter_id', models.CharField(blank=True, max_length=128, null=True)),
                ('session_id', models.UUIDField(blank=True, null=True, unique=True)),
                ('version', models.PositiveIntegerField(default=0)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['number'],
                'constraints': [
                    models.CheckConstraint(
                        condition=models.Q(models.Q(('session_id__isnull', False), ('status', 'occupied')), models.Q(models.Q(('status', 'occupied'), _negated=True), ('session_id__isnull', True)), _connector='OR'),
                        name='table_session_iff_occupied',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='VoidedSession',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('table_number', models.PositiveIntegerField()),
                ('session_id', models.UUIDField(unique=True)),
                ('guest_name', models.CharField(blank=True, default='', max_length=100)),
                ('released_by', models.CharField(blank=True, max_length=128, null=True)),
                ('reason', models.CharField(blank=True, default='', max_length=200)),
                ('released_at', models.DateTimeField(auto_now_add=True)),
                ('table', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='voided_sessions', to='tables.table')),
            ],
            options={
                'ordering': ['-released_at'],
            },
        ),
    ]
