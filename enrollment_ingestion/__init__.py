"""
enrollment_ingestion -- ERO enrollment ingestion, validation and reconciliation.

Decodes flat-file and XML enrollment submissions, gates them structurally,
validates each record against a declarative rule table, resolves offices and
owners against the registry, and upserts them one record per transaction.

Architecture:
    enrollment_ingestion/ sits above enrollment_kernel and enrollment_config.
    Nothing in the kernel imports from ingestion.
"""
