# -*- coding: utf-8 -*-
"""
Secret resolution for stored settings.

SettingsRepository passes each stored secret through a SecretProvider before
handing it to callers. Swap DbSecretProvider for a vault-backed provider to
decrypt or look up secrets without touching the callers.
"""


class SecretProvider:
    """Interface: resolve a stored secret value."""

    def get_secret(self, key, raw_value):
        """
        Args:
            key (str): Secret name, e.g. 'ClientSecret'
            raw_value (str): Value as stored in the database

        Returns:
            str: The usable secret
        """
        raise NotImplementedError


class DbSecretProvider(SecretProvider):
    """Secrets live in SQLite as-is; the stored value is returned unchanged."""

    def get_secret(self, key, raw_value):
        return raw_value
