"""
Domain layer for Myship email processing.

This layer contains:
- Data models (ParsedEmail, EmailMetadata, result types)
- Parsing of Myship notification emails
- Reconciliation dispatch to the order-management RPCs
- The per-message processing pipeline
"""
