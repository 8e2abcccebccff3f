"""Request identity.

Authentication happens upstream: the gateway forwards the user id in a
header (``IdentityConfig.user_id_header``).  The reviewer flag comes
from the ``user_roles`` side table.
"""

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Request

from safereport.configs.config import get_identity_config
from safereport.configs.system import IdentityConfig
from safereport.infra.db import RoleRepository, get_role_repository
from safereport.infra.id_utils import is_safe_identifier


@dataclass(frozen=True)
class Identity:
    user_id: str
    is_authority: bool = False


class IdentityError(Exception):
    status_code = 401
    code = "UNAUTHENTICATED"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class Unauthenticated(IdentityError):
    pass


class Forbidden(IdentityError):
    status_code = 403
    code = "FORBIDDEN"


async def get_optional_identity(
    request: Request,
    config: Annotated[IdentityConfig, Depends(get_identity_config)],
    roles: Annotated[RoleRepository, Depends(get_role_repository)],
) -> Identity | None:
    raw = request.headers.get(config.user_id_header, "").strip()
    if not raw:
        return None
    if not is_safe_identifier(raw):
        raise Unauthenticated(f"Malformed {config.user_id_header} header")
    return Identity(
        user_id=raw,
        is_authority=await roles.has_role(raw, config.authority_role),
    )


async def require_identity(
    identity: Annotated[Identity | None, Depends(get_optional_identity)],
) -> Identity:
    if identity is None:
        raise Unauthenticated("Sign in to continue")
    return identity


async def require_authority(
    identity: Annotated[Identity, Depends(require_identity)],
) -> Identity:
    if not identity.is_authority:
        raise Forbidden("Authority access required")
    return identity
