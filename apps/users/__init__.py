"""Users app package.

Defines the platform account shared by clients, partners and
administrators. Use ``apps.users.models.CustomUser`` as the
AUTH_USER_MODEL throughout the project.
"""
