"""Centralized FastAPI dependency type aliases.

Import these ``*Dep`` aliases in route modules instead of manually
writing ``Annotated[T, Depends(get_xxx)]`` everywhere.  Each alias
corresponds to a single ``get_*`` factory and can be overridden in
tests via ``app.dependency_overrides[get_xxx] = ...``.
"""

from typing import Annotated

from fastapi import Depends

from safereport.configs.config import AppConfig, get_app_config
from safereport.core.completion import CompletionService
from safereport.core.completion.deps import get_completion_service
from safereport.infra.db import (
    IncidentRepository,
    RoleRepository,
    get_incident_repository,
    get_role_repository,
)
from safereport.infra.identity import (
    Identity,
    get_optional_identity,
    require_authority,
    require_identity,
)
from safereport.infra.storage import LocalEvidenceStorage, get_evidence_storage

AppConfigDep = Annotated[AppConfig, Depends(get_app_config)]
CompletionServiceDep = Annotated[CompletionService, Depends(get_completion_service)]
IncidentRepositoryDep = Annotated[IncidentRepository, Depends(get_incident_repository)]
RoleRepositoryDep = Annotated[RoleRepository, Depends(get_role_repository)]
EvidenceStorageDep = Annotated[LocalEvidenceStorage, Depends(get_evidence_storage)]
OptionalIdentityDep = Annotated[Identity | None, Depends(get_optional_identity)]
IdentityDep = Annotated[Identity, Depends(require_identity)]
AuthorityDep = Annotated[Identity, Depends(require_authority)]
