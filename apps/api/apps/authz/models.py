"""
Authz models: staff user with a single role.
"""
import uuid
from django.db import models
from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin


class RoleChoices(models.TextChoices):
    """Closed set of staff roles."""
    ADMIN = 'admin', 'Admin'
    WILDLIFE_OFFICER = 'wildlife_officer', 'Wildlife Officer'
    VETERINARIAN = 'veterinarian', 'Veterinarian'
    EMERGENCY_OFFICER = 'emergency_officer', 'Emergency Officer'
    CALL_OPERATOR = 'call_operator', 'Call Operator'


class UserManager(BaseUserManager):
    """Custom user manager for email-based authentication."""
    
    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError('Email is required')
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user
    
    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_active', True)
        extra_fields.setdefault('role', RoleChoices.ADMIN)
        return self.create_user(email, password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin):
    """
    Staff account.
    
    The animal care services only read `id`, `name` and `role`;
    authentication (JWT) happens before they are called.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(unique=True, max_length=255)
    name = models.CharField(max_length=200, blank=True)
    role = models.CharField(
        max_length=30,
        choices=RoleChoices.choices,
        default=RoleChoices.CALL_OPERATOR
    )
    specialization = models.CharField(
        max_length=200,
        blank=True,
        help_text='Veterinary specialization, shown when picking collaborators'
    )
    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    
    objects = UserManager()
    
    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []
    
    class Meta:
        db_table = 'auth_user'
        verbose_name = 'User'
        verbose_name_plural = 'Users'
        indexes = [
            models.Index(fields=['role', 'is_active'], name='idx_user_role_active'),
        ]
    
    def __str__(self):
        return self.name or self.email
    
    @property
    def display_name(self):
        return self.name or self.email
