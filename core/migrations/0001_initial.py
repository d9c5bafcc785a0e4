import decimal

import django.contrib.auth.models
import django.contrib.auth.validators
import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

import core.validators


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('username', models.CharField(error_messages={'unique': 'A user with that username already exists.'}, help_text='Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.', max_length=150, unique=True, validators=[django.contrib.auth.validators.UnicodeUsernameValidator()], verbose_name='username')),
                ('first_name', models.CharField(blank=True, max_length=150, verbose_name='first name')),
                ('last_name', models.CharField(blank=True, max_length=150, verbose_name='last name')),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether the user can log into this admin site.', verbose_name='staff status')),
                ('is_active', models.BooleanField(default=True, help_text='Designates whether this user should be treated as active. Unselect this instead of deleting accounts.', verbose_name='active')),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('email', models.EmailField(error_messages={'unique': 'A user with that email already exists.'}, help_text='Required. Enter a valid email address.', max_length=254, unique=True, verbose_name='email address')),
                ('full_name', models.CharField(blank=True, default='', help_text='Name shown to other users.', max_length=200, verbose_name='full name')),
                ('phone_number', models.CharField(blank=True, default='', help_text='Optional. Enter phone number in international format.', max_length=20, validators=[core.validators.validate_phone_number], verbose_name='phone number')),
                ('is_professional', models.BooleanField(default=False, help_text='Designates whether this account offers services.', verbose_name='is professional')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'user',
                'verbose_name_plural': 'users',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['email'], name='core_user_email_38052c_idx'),
                    models.Index(fields=['is_professional'], name='core_user_is_prof_59bb30_idx'),
                ],
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='Professional',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('display_name', models.CharField(max_length=200, verbose_name='display name')),
                ('profession', models.CharField(help_text='Trade category, e.g. "Plomero"', max_length=100, verbose_name='profession')),
                ('city', models.CharField(blank=True, default='', max_length=100, verbose_name='city')),
                ('state', models.CharField(blank=True, default='', help_text='Department / state', max_length=100, verbose_name='state')),
                ('barrio', models.CharField(blank=True, default='', max_length=100, verbose_name='barrio')),
                ('bio', models.TextField(blank=True, default='', verbose_name='bio')),
                ('hourly_rate', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True, verbose_name='hourly rate')),
                ('avatar_url', models.URLField(blank=True, default='', max_length=500, verbose_name='avatar url')),
                ('phone', models.CharField(blank=True, default='', max_length=20, validators=[core.validators.validate_phone_number], verbose_name='phone')),
                ('rating', models.DecimalField(decimal_places=2, default=decimal.Decimal('0.00'), help_text='Mean review rating, 0 when there are no reviews', max_digits=3, validators=[django.core.validators.MinValueValidator(decimal.Decimal('0.00'), message='Rating cannot be negative.'), django.core.validators.MaxValueValidator(decimal.Decimal('5.00'), message='Rating cannot exceed 5.00.')], verbose_name='rating')),
                ('rating_count', models.PositiveIntegerField(default=0, verbose_name='rating count')),
                ('is_premium', models.BooleanField(default=False, help_text='Stored premium flag. Only meaningful with a future subscription end date.', verbose_name='premium flag')),
                ('subscription_end_date', models.DateTimeField(blank=True, null=True, verbose_name='subscription end date')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('user', models.OneToOneField(blank=True, help_text='Account that owns this listing', null=True, on_delete=django.db.models.deletion.CASCADE, related_name='professional_profile', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'professional',
                'verbose_name_plural': 'professionals',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['profession'], name='core_profes_profess_df0674_idx'),
                    models.Index(fields=['city'], name='core_profes_city_99a947_idx'),
                    models.Index(fields=['rating'], name='core_profes_rating_b97807_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Hire',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('guest_name', models.CharField(blank=True, default='', max_length=200, verbose_name='guest name')),
                ('guest_email', models.EmailField(blank=True, default='', max_length=254, verbose_name='guest email')),
                ('guest_phone', models.CharField(blank=True, default='', max_length=20, verbose_name='guest phone')),
                ('service_category', models.CharField(max_length=100, verbose_name='service category')),
                ('service_description', models.TextField(validators=[django.core.validators.MinLengthValidator(20), django.core.validators.MaxLengthValidator(500)], verbose_name='service description')),
                ('service_location', models.CharField(blank=True, default='', help_text='"city, department[, barrio]"', max_length=300, verbose_name='service location')),
                ('proposal_message', models.TextField(blank=True, default='', verbose_name='proposal message')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('accepted', 'Accepted'), ('rejected', 'Rejected'), ('in_progress', 'In progress'), ('waiting_client_approval', 'Waiting client approval'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], default='pending', max_length=32, verbose_name='status')),
                ('review_token', models.CharField(blank=True, help_text='Guest capability token for confirmation and review', max_length=128, null=True, unique=True, verbose_name='review token')),
                ('reviewed_by_guest', models.BooleanField(default=False, verbose_name='reviewed by guest')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, verbose_name='created at')),
                ('accepted_at', models.DateTimeField(blank=True, null=True, verbose_name='accepted at')),
                ('rejected_at', models.DateTimeField(blank=True, null=True, verbose_name='rejected at')),
                ('started_at', models.DateTimeField(blank=True, null=True, verbose_name='started at')),
                ('completion_requested_at', models.DateTimeField(blank=True, null=True, verbose_name='completion requested at')),
                ('completed_at', models.DateTimeField(blank=True, null=True, verbose_name='completed at')),
                ('cancelled_at', models.DateTimeField(blank=True, null=True, verbose_name='cancelled at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('client', models.ForeignKey(blank=True, help_text='Client account; null for guest hires', null=True, on_delete=django.db.models.deletion.CASCADE, related_name='client_hires', to=settings.AUTH_USER_MODEL)),
                ('professional', models.ForeignKey(blank=True, help_text='Targeted professional; null while the request is open', null=True, on_delete=django.db.models.deletion.PROTECT, related_name='hires', to='core.professional')),
            ],
            options={
                'verbose_name': 'hire',
                'verbose_name_plural': 'hires',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['client'], name='core_hire_client__eeb53c_idx'),
                    models.Index(fields=['professional'], name='core_hire_profess_9a05cb_idx'),
                    models.Index(fields=['status'], name='core_hire_status_afd28e_idx'),
                    models.Index(fields=['service_category'], name='core_hire_service_1a99da_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(('client__isnull', False), ('guest_name', ''), ('guest_email', ''), ('guest_phone', '')),
                            models.Q(
                                ('client__isnull', True),
                                models.Q(('guest_name', ''), _negated=True),
                                models.Q(('guest_email', ''), _negated=True),
                                models.Q(('guest_phone', ''), _negated=True),
                            ),
                            _connector='OR',
                        ),
                        name='hire_client_xor_guest',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='Review',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('rating', models.PositiveSmallIntegerField(validators=[django.core.validators.MinValueValidator(1, message='Rating must be at least 1.'), django.core.validators.MaxValueValidator(5, message='Rating must be at most 5.')], verbose_name='rating')),
                ('comment', models.TextField(blank=True, default='', validators=[django.core.validators.MaxLengthValidator(500)], verbose_name='comment')),
                ('is_guest_review', models.BooleanField(default=False, verbose_name='guest review')),
                ('guest_reviewer_name', models.CharField(blank=True, default='', max_length=200, verbose_name='guest reviewer name')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('client', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='reviews_given', to=settings.AUTH_USER_MODEL)),
                ('hire', models.OneToOneField(help_text='Hire being reviewed (one review per hire)', on_delete=django.db.models.deletion.CASCADE, related_name='review', to='core.hire')),
                ('professional', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='reviews', to='core.professional')),
            ],
            options={
                'verbose_name': 'review',
                'verbose_name_plural': 'reviews',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['professional'], name='core_review_profess_99306a_idx'),
                    models.Index(fields=['rating'], name='core_review_rating_41e437_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Notification',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('type', models.CharField(choices=[('solicitud_enviada', 'Request sent'), ('solicitud_aceptada', 'Request accepted'), ('solicitud_rechazada', 'Request rejected'), ('trabajo_completado', 'Completion requested'), ('aprobacion_completado', 'Completion approved'), ('mensaje_nuevo', 'New message'), ('contacto_compartido', 'Contact shared'), ('nueva_resena', 'New review')], max_length=32, verbose_name='type')),
                ('sender_name', models.CharField(blank=True, default='', max_length=200, verbose_name='sender name')),
                ('title', models.CharField(max_length=255, verbose_name='title')),
                ('message', models.TextField(blank=True, default='', verbose_name='message')),
                ('related_id', models.CharField(blank=True, default='', max_length=64, verbose_name='related id')),
                ('related_type', models.CharField(blank=True, default='', max_length=32, verbose_name='related type')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('read', models.BooleanField(default=False, verbose_name='read')),
                ('recipient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='notifications', to=settings.AUTH_USER_MODEL)),
                ('sender', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='notifications_sent', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'notification',
                'verbose_name_plural': 'notifications',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['recipient', 'read'], name='core_notifi_recipie_10fe77_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='NotificationDispatch',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('key', models.CharField(max_length=128, unique=True, verbose_name='key')),
                ('notification_type', models.CharField(blank=True, default='', max_length=32, verbose_name='notification type')),
                ('email_types', models.CharField(blank=True, default='', max_length=200, verbose_name='email types')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
            ],
            options={
                'verbose_name': 'notification dispatch',
                'verbose_name_plural': 'notification dispatches',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='Conversation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('hire', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='conversations', to='core.hire')),
                ('participant1', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='conversations_started', to=settings.AUTH_USER_MODEL)),
                ('participant2', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='conversations_received', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'conversation',
                'verbose_name_plural': 'conversations',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='Message',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('content', models.TextField(verbose_name='content')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('conversation', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='messages', to='core.conversation')),
                ('sender', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='messages_sent', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'message',
                'verbose_name_plural': 'messages',
                'ordering': ['created_at'],
            },
        ),
    ]
