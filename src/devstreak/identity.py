"""Local identity provider: who is signed in and whether GitHub is linked."""

import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class OwnerIdentity(BaseModel):
    """The signed-in owner of the ledger."""

    owner_id: str = Field(..., min_length=1)
    github_login: Optional[str] = Field(default=None, description="GitHub username if linked")

    model_config = {"frozen": True}

    @property
    def is_github_linked(self) -> bool:
        return bool(self.github_login)


class LocalIdentityProvider:
    """Reads and writes the current owner identity from <state>/identity.json."""

    def __init__(self, identity_file: Path):
        self.identity_file = identity_file

    def current(self) -> Optional[OwnerIdentity]:
        if not self.identity_file.exists():
            return None
        try:
            data = json.loads(self.identity_file.read_text(encoding="utf-8"))
            return OwnerIdentity.model_validate(data)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable identity file {self.identity_file}: {e}")
            return None

    def sign_in(self, owner_id: str, github_login: Optional[str] = None) -> OwnerIdentity:
        identity = OwnerIdentity(owner_id=owner_id, github_login=github_login or None)
        self.identity_file.parent.mkdir(parents=True, exist_ok=True)
        self.identity_file.write_text(
            json.dumps(identity.model_dump(mode="json"), indent=2),
            encoding="utf-8",
        )
        return identity

    def sign_out(self) -> None:
        self.identity_file.unlink(missing_ok=True)
