"""
Shared code for the order REST API and the counter station.

- shared.config: settings (pydantic-settings), structured logging, constants
- shared.infrastructure: SQLAlchemy sessions and safe_commit(), Redis
  order feed publishing, request correlation ids
- shared.utils: exceptions with auto-logging, validators, order lifecycle
  rules, pydantic schemas shared by both processes

IMPORT EXAMPLES:
    from shared.infrastructure.db import get_db, safe_commit
    from shared.config.settings import settings
    from shared.config.constants import ItemStatus, PaymentMethod
    from shared.utils.exceptions import NotFoundError, ValidationError
    from shared.utils import order_lifecycle
"""
