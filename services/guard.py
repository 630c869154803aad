from __future__ import annotations

import logging
from typing import Any, Mapping

from services.errors import Forbidden

logger = logging.getLogger(__name__)


class AuthorizationGuard:
    """
    Owner check for routes addressing a single account.

    Runs after token verification. Identifiers are compared as strings with
    no coercion, so an int claim never matches a "1" path segment.
    """

    def check(self, claims: Mapping[str, Any] | None, target_id: Any) -> None:
        user_id = claims.get("userId") if claims else None
        if (
            isinstance(user_id, str)
            and isinstance(target_id, str)
            and user_id == target_id
        ):
            return
        logger.warning("Forbidden: %r may not act on account %r", user_id, target_id)
        raise Forbidden("Forbidden")
