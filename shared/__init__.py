"""Shared package for the caregiver tracker.

This package contains code used by both the backend Flask API and the Python
client. It includes:

- Database models (models.py) - SQLAlchemy models for users, care recipients and their records
- Enums (enums.py) - status values and categories
- Validation utilities (validation.py, schemas.py) - input validation, sanitization and camelCase wire schemas
- Utility functions (utils.py) - day boundaries, schedules and display formatting
"""
