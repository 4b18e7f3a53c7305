from sheets_fdw.infra.secrets.null_provider import NullSecretProvider
from sheets_fdw.infra.secrets.dict_provider import DictSecretProvider
from sheets_fdw.infra.secrets.composite_provider import CompositeSecretProvider
from sheets_fdw.infra.secrets.file_vault_provider import FileVaultSecretProvider, FileVaultSecretStore

__all__ = [
    "NullSecretProvider",
    "DictSecretProvider",
    "CompositeSecretProvider",
    "FileVaultSecretProvider",
    "FileVaultSecretStore",
]
