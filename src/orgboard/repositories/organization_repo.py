"""Server-side procedures for organization membership and lifecycle."""
from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from orgboard.models import Officer, Organization, OrganizationMember
from orgboard.repositories.base import backend_call
from orgboard.services.errors import ConstraintViolation, NotFoundError, PermissionDenied

logger = logging.getLogger(__name__)

__all__ = ["OrganizationRepository"]

MEMBER_POSITION = "member"


class OrganizationRepository:
    """Multi-step organization procedures, each committed as one transaction."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_organization(self, org_id: uuid.UUID) -> Organization:
        with backend_call(self.session, "load organization"):
            organization = self.session.get(Organization, org_id)
        if organization is None:
            raise NotFoundError("Organization not found")
        return organization

    def list_officers(self, org_id: uuid.UUID) -> list[Officer]:
        with backend_call(self.session, "load officers"):
            result = self.session.execute(
                select(Officer).where(Officer.org_id == org_id).order_by(Officer.assigned_at)
            )
            return list(result.scalars())

    def is_officer(self, org_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        with backend_call(self.session, "load officer"):
            return self.session.get(Officer, (user_id, org_id)) is not None

    def promote_to_officer(
        self, member_id: uuid.UUID, org_id: uuid.UUID, position: str
    ) -> Officer:
        """Seat an existing member as an officer with ``position``.

        Raises:
            NotFoundError: If the organization does not exist.
            ConstraintViolation: If the user is not a member of the organization
                or already holds an officer seat there.
        """
        self.get_organization(org_id)
        with backend_call(self.session, "promote member"):
            membership = self.session.get(OrganizationMember, (org_id, member_id))
            if membership is None:
                raise ConstraintViolation(
                    "Member must first be added to the organization before being promoted"
                )
            if self.session.get(Officer, (member_id, org_id)) is not None:
                raise ConstraintViolation("Member is already an officer")
            officer = Officer(user_id=member_id, org_id=org_id, position=position)
            membership.position = position
            self.session.add(officer)
            self.session.commit()
        logger.info("Promoted %s to %s in organization %s", member_id, position, org_id)
        return officer

    def demote_to_member(self, officer_id: uuid.UUID, org_id: uuid.UUID) -> None:
        """Remove an officer seat; the membership row reverts to a plain member."""
        with backend_call(self.session, "demote officer"):
            officer = self.session.get(Officer, (officer_id, org_id))
            if officer is None:
                raise ConstraintViolation("Not an officer")
            self.session.delete(officer)
            membership = self.session.get(OrganizationMember, (org_id, officer_id))
            if membership is not None:
                membership.position = MEMBER_POSITION
            self.session.commit()
        logger.info("Demoted %s to member in organization %s", officer_id, org_id)

    def delete_organization(
        self, org_id: uuid.UUID, confirmation_code: str, actor_id: uuid.UUID
    ) -> None:
        """Delete an organization after the caller re-types its ``org_code``.

        Raises:
            NotFoundError: If the organization does not exist.
            ConstraintViolation: If ``confirmation_code`` does not match.
            PermissionDenied: If ``actor_id`` is not one of its officers.
        """
        organization = self.get_organization(org_id)
        if organization.org_code != confirmation_code:
            raise ConstraintViolation("Organization code does not match")
        if not self.is_officer(org_id, actor_id):
            raise PermissionDenied("Only officers can delete organizations")
        with backend_call(self.session, "delete organization"):
            self.session.delete(organization)
            self.session.commit()
        logger.info("Organization %s deleted by %s", org_id, actor_id)
