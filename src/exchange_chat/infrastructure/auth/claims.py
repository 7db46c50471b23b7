from __future__ import annotations

from typing import Any

from exchange_chat.application.dto.principal import Principal


def principal_from_claims(payload: dict[str, Any]) -> Principal:
    """Build a Principal from decoded token claims (`sub`, `name`, `roles`)."""
    subject = payload.get("sub", payload.get("id"))
    if subject is None:
        raise ValueError("Token has no subject")
    return Principal(
        subject_id=int(subject),
        name=str(payload.get("name", "")),
        roles=list(payload.get("roles", [])),
    )
