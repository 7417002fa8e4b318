"""Users app package.

Defines the custom user model with marketplace roles (guest, owner,
superuser). Use ``apps.users.models.CustomUser`` as the AUTH_USER_MODEL
throughout the project.
"""
