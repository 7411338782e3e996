"""Azure DevOps PAT resolution.

Resolution order (stops at first success):
  1. An explicit --pat argument
  2. AZURE_DEVOPS_EXT_PAT environment variable — the variable the az devops
     extension already reads, so developers who use `az devops` need no
     extra setup.
"""

from __future__ import annotations

import logging
import os

from prwatch_core.config import PAT_ENV_VAR

logger = logging.getLogger(__name__)


def resolve_pat(explicit: str | None = None) -> str | None:
    """Return a PAT or None if no source is available.

    Never raises — callers should check for None and emit a UsageError.
    """
    if explicit:
        return explicit

    token = os.environ.get(PAT_ENV_VAR)
    if token:
        logger.debug("Resolved PAT from %s.", PAT_ENV_VAR)
        return token

    return None
