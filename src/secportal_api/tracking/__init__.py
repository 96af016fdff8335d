"""
Security Request Tracking Module

Core of the portal API:
- Identifier generation for requests and comments
- Submission validation and normalization into JSONB-backed rows
- Role resolution from the user_roles cache
- Role-aware read queries with aggregated comments and statistics
- Request lifecycle (create, status transitions with audit comments)
- New-report webhook notifications
"""

__version__ = "1.0.0"
