"""
Core infrastructure for the Tubely backend application.

- auth: Bearer token creation/validation and the current-user dependency
- database: MongoDB async client with Motor driver and connection pooling
- exceptions: API error taxonomy and its FastAPI exception handler
"""
