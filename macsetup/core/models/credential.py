"""
Credential record — a secret or configuration value typed by the operator.

``value`` is a SecretStr: repr(), str(), and log formatting show
``**********``. Only the owner-only file writers in
``macsetup.core.persistence.secret_files`` call ``get_secret_value()``.
"""

from __future__ import annotations

from pydantic import BaseModel, SecretStr


class CredentialRecord(BaseModel):
    name: str
    value: SecretStr
    sensitive: bool = False

    @classmethod
    def plain(cls, name: str, value: str) -> CredentialRecord:
        return cls(name=name, value=SecretStr(value), sensitive=False)
