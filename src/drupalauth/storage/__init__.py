from drupalauth.storage.credential_store import (
    CredentialStore,
    FileCredentialStore,
    MemoryCredentialStore,
    StoredEntry,
)

__all__ = ["CredentialStore", "FileCredentialStore", "MemoryCredentialStore", "StoredEntry"]
