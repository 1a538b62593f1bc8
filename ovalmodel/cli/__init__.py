# CLI package for ovalmodel
"""
Command line interface for loading, checking and re-emitting definitions.

Commands:
    ovalmodel summary  — Show registry counts for merged documents
    ovalmodel validate — Check that merged documents form a lockable model
    ovalmodel export   — Merge documents and write one canonical document
    ovalmodel bind     — Bind a variables document and show external values
"""
