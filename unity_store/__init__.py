"""unity_store — Per-user document store for the Unity finance dashboard.

Provides:
    - Tenant-scoped S3 key derivation and validation (keys)
    - Typed whole-object S3 access (object_store)
    - Folder listings over the flat key space (listing)
    - Presigned upload/download URLs (presign)
    - Notes, contacts, projections and onboarding documents
    - Lambda HTTP entry point (lambda_function)
    - Client-side debounced autosave with a stale-save guard (autosave)
"""

__version__ = "1.0.0"
