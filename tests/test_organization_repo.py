# tests/test_organization_repo.py
"""Tests for organization membership procedures."""

import uuid

import pytest
from sqlalchemy import func, select

from orgboard.models import Officer, Organization, OrganizationMember, Post, User
from orgboard.repositories import OrganizationRepository
from orgboard.services.errors import ConstraintViolation, NotFoundError, PermissionDenied


@pytest.fixture()
def orgs(db_session) -> OrganizationRepository:
    return OrganizationRepository(db_session)


def test_promote_member(orgs: OrganizationRepository, organization: Organization, member: User) -> None:
    officer = orgs.promote_to_officer(member.id, organization.id, "Treasurer")

    assert officer.position == "Treasurer"
    assert orgs.is_officer(organization.id, member.id)
    membership = orgs.session.get(OrganizationMember, (organization.id, member.id))
    assert membership.position == "Treasurer"


def test_promote_requires_membership(
    orgs: OrganizationRepository, organization: Organization, make_user
) -> None:
    outsider = make_user("Frank")
    with pytest.raises(ConstraintViolation) as exc_info:
        orgs.promote_to_officer(outsider.id, organization.id, "Secretary")
    assert "must first be added" in exc_info.value.message


def test_promote_twice_is_rejected(
    orgs: OrganizationRepository, organization: Organization, author: User
) -> None:
    with pytest.raises(ConstraintViolation):
        orgs.promote_to_officer(author.id, organization.id, "Vice President")


def test_demote_officer(
    orgs: OrganizationRepository, organization: Organization, author: User
) -> None:
    orgs.demote_to_member(author.id, organization.id)
    assert not orgs.is_officer(organization.id, author.id)
    membership = orgs.session.get(OrganizationMember, (organization.id, author.id))
    assert membership.position == "member"


def test_demote_non_officer_is_rejected(
    orgs: OrganizationRepository, organization: Organization, member: User
) -> None:
    with pytest.raises(ConstraintViolation):
        orgs.demote_to_member(member.id, organization.id)


class TestDeleteOrganization:
    def test_code_mismatch_is_rejected(
        self, orgs: OrganizationRepository, organization: Organization, author: User
    ) -> None:
        """Test that a wrong confirmation code keeps the organization."""
        with pytest.raises(ConstraintViolation):
            orgs.delete_organization(organization.id, "WRONG", author.id)
        assert orgs.get_organization(organization.id) is not None

    def test_only_officers_may_delete(
        self, orgs: OrganizationRepository, organization: Organization, member: User
    ) -> None:
        with pytest.raises(PermissionDenied):
            orgs.delete_organization(organization.id, organization.org_code, member.id)

    def test_delete_cascades(
        self,
        orgs: OrganizationRepository,
        organization: Organization,
        author: User,
        general_post: Post,
    ) -> None:
        orgs.delete_organization(organization.id, organization.org_code, author.id)

        session = orgs.session
        with pytest.raises(NotFoundError):
            orgs.get_organization(organization.id)
        assert session.scalar(select(func.count()).select_from(OrganizationMember)) == 0
        assert session.scalar(select(func.count()).select_from(Officer)) == 0
        assert session.scalar(select(func.count()).select_from(Post)) == 0

    def test_missing_organization(self, orgs: OrganizationRepository, author: User) -> None:
        with pytest.raises(NotFoundError):
            orgs.delete_organization(uuid.uuid4(), "X", author.id)
