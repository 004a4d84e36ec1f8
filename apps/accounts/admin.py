# ==========================================
# apps/accounts/admin.py
# ==========================================

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.html import format_html
from .models import User


ROLE_BADGE = (
    '<span style="background: {}; color: {}; padding: 3px 8px; '
    'border-radius: 10px; font-size: 11px;">{}</span>'
)


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Invoice participants and admins. Staff users hold the admin capability."""

    list_display = ['email', 'display_name', 'role_badge', 'is_active', 'created_at']
    list_filter = ['is_staff', 'is_active']
    search_fields = ['email', 'display_name']
    ordering = ['email']
    readonly_fields = ['created_at', 'last_login']

    fieldsets = (
        (None, {'fields': ('email', 'display_name', 'password')}),
        ('Access', {'fields': ('is_active', 'is_staff', 'is_superuser')}),
        ('Activity', {'fields': ('created_at', 'last_login')}),
    )
    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'display_name', 'password1', 'password2', 'is_staff'),
        }),
    )
    filter_horizontal = []

    def role_badge(self, obj):
        if obj.is_staff:
            return format_html(ROLE_BADGE, '#A47449', 'white', 'Invoice admin')
        return format_html(ROLE_BADGE, '#ccc', '#666', 'Participant')
    role_badge.short_description = 'Role'
    role_badge.admin_order_field = 'is_staff'
