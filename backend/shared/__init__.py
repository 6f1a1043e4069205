"""
Shared module for common infrastructure across the ERP API modules.

STRUCTURE:
- shared.config: Configuration
  - settings.py: Environment config (pydantic-settings)
  - logging.py: Structured logging and security audit helpers
  - constants.py: Roles, limits, list query conventions

- shared.infrastructure: Database and request context
  - db.py: SQLAlchemy sessions, transaction_scope()
  - correlation.py: Request IDs for logs and response envelopes

- shared.utils: Utilities
  - exceptions.py: HTTP exceptions with auto-logging
  - validators.py: Identifier grammar, search term sanitizing

IMPORT EXAMPLES:
    from shared.infrastructure.db import get_db, transaction_scope
    from shared.config.settings import settings
    from shared.config.constants import Roles, Limits
    from shared.utils.exceptions import NotFoundError, ValidationError
"""
