"""User domain models for the rental marketplace.

Платформа различает гостей (арендаторов), владельцев объявлений и
суперпользователей. Логин выполняется по email.
"""

from __future__ import annotations

from typing import Any

from django.contrib.auth.models import AbstractUser, BaseUserManager  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class CustomUserManager(BaseUserManager):
    """Менеджер пользователей, использующий email в качестве логина."""

    use_in_migrations = True

    def _create_user(self, email: str, password: str | None, **extra_fields: Any):
        if not email:
            raise ValueError("Email обязателен для создания пользователя.")
        email = self.normalize_email(email)

        user = self.model(email=email, **extra_fields)
        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()
        user.save(using=self._db)
        return user

    def create_user(self, email: str, password: str | None = None, **extra_fields: Any):
        extra_fields.setdefault("is_staff", False)
        extra_fields.setdefault("is_superuser", False)
        extra_fields.setdefault("role", CustomUser.RoleChoices.GUEST)
        return self._create_user(email, password, **extra_fields)

    def create_superuser(self, email: str, password: str | None = None, **extra_fields: Any):
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        extra_fields.setdefault("role", CustomUser.RoleChoices.SUPERUSER)

        if extra_fields.get("is_staff") is not True:
            raise ValueError("Суперпользователь должен иметь is_staff=True.")
        if extra_fields.get("is_superuser") is not True:
            raise ValueError("Суперпользователь должен иметь is_superuser=True.")

        return self._create_user(email, password, **extra_fields)


class CustomUser(AbstractUser):
    """Пользователь платформы: гость, владелец или суперпользователь."""

    class RoleChoices(models.TextChoices):
        GUEST = "guest", _("Гость")
        OWNER = "owner", _("Владелец")
        SUPERUSER = "superuser", _("Суперпользователь")

    username = models.CharField(
        _("Отображаемое имя"),
        max_length=150,
        blank=True,
        help_text=_("Опционально, используется в интерфейсах и уведомлениях."),
    )
    email = models.EmailField(_("Email"), unique=True)
    role = models.CharField(
        _("Роль"),
        max_length=20,
        choices=RoleChoices.choices,
        default=RoleChoices.GUEST,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = CustomUserManager()

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["username"]

    class Meta:
        verbose_name = _("Пользователь")
        verbose_name_plural = _("Пользователи")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.email} ({self.get_role_display()})"

    def is_owner(self) -> bool:
        return self.role == self.RoleChoices.OWNER

    def is_platform_superuser(self) -> bool:
        return self.role == self.RoleChoices.SUPERUSER or self.is_superuser

    def is_platform_staff(self) -> bool:
        return self.is_staff or self.is_platform_superuser()
