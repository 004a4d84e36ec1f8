# Generated manually for invoices app

import uuid
from decimal import Decimal
from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Invoice',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('title', models.CharField(max_length=200)),
                ('description', models.TextField(blank=True)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=10, validators=[MinValueValidator(Decimal('0.01'))])),
                ('status', models.CharField(choices=[('active', 'Active'), ('paying', 'Paying'), ('paid', 'Paid')], default='active', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='created_invoices', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'invoices',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['status', 'created_at'], name='invoices_status_created_idx')],
            },
        ),
        migrations.CreateModel(
            name='InvoiceParticipant',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('has_paid', models.BooleanField(default=False)),
                ('paid_at', models.DateTimeField(blank=True, null=True)),
                ('last_reminder_sent_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('invoice', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='participants', to='invoices.invoice')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='invoice_participations', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'invoice_participants',
                'ordering': ['created_at'],
                'constraints': [
                    models.UniqueConstraint(fields=('invoice', 'user'), name='unique_invoice_participant'),
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(('has_paid', True), ('paid_at__isnull', False)),
                            models.Q(('has_paid', False), ('paid_at__isnull', True)),
                            _connector='OR',
                        ),
                        name='participant_paid_at_matches_has_paid',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='Approval',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('invoice', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='approvals', to='invoices.invoice')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='invoice_approvals', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'invoice_approvals',
                'ordering': ['created_at'],
                'constraints': [
                    models.UniqueConstraint(fields=('invoice', 'user'), name='unique_invoice_approval'),
                ],
            },
        ),
    ]
