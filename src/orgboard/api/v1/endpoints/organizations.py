# src/orgboard/api/v1/endpoints/organizations.py
"""Organization administration endpoints."""

import uuid

from fastapi import APIRouter, Response, status

from orgboard.schemas.organization import OfficerPromote, OfficerResponse, OrganizationDelete
from orgboard.services.errors import PermissionDenied

from ..dependencies import CurrentUserDep, OrganizationRepoDep

router = APIRouter(prefix="/organizations", tags=["organizations"])


@router.get("/{org_id}/officers", response_model=list[OfficerResponse])
async def list_officers(org_id: uuid.UUID, repo: OrganizationRepoDep) -> list[OfficerResponse]:
    """List the officers of an organization."""
    repo.get_organization(org_id)
    return [OfficerResponse.model_validate(officer) for officer in repo.list_officers(org_id)]


@router.post(
    "/{org_id}/officers",
    response_model=OfficerResponse,
    status_code=status.HTTP_201_CREATED,
)
async def promote_officer(
    org_id: uuid.UUID,
    promotion: OfficerPromote,
    current_user: CurrentUserDep,
    repo: OrganizationRepoDep,
) -> OfficerResponse:
    """Promote a member to officer; only current officers may do so."""
    repo.get_organization(org_id)
    if not repo.is_officer(org_id, current_user.id):
        raise PermissionDenied("Only officers can promote members")
    officer = repo.promote_to_officer(promotion.member_id, org_id, promotion.position)
    return OfficerResponse.model_validate(officer)


@router.delete("/{org_id}/officers/{officer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def demote_officer(
    org_id: uuid.UUID,
    officer_id: uuid.UUID,
    current_user: CurrentUserDep,
    repo: OrganizationRepoDep,
) -> Response:
    """Demote an officer back to a member."""
    repo.get_organization(org_id)
    if not repo.is_officer(org_id, current_user.id):
        raise PermissionDenied("Only officers can demote officers")
    repo.demote_to_member(officer_id, org_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{org_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_organization(
    org_id: uuid.UUID,
    confirmation: OrganizationDelete,
    current_user: CurrentUserDep,
    repo: OrganizationRepoDep,
) -> Response:
    """Delete an organization after its code is re-typed."""
    repo.delete_organization(org_id, confirmation.confirmation_code, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
