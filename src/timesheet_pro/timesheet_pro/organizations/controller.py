from __future__ import annotations

from flask import Flask

from ..common.validators import parse_uuid
from ..common.web import current_user_id, json_body, json_ok, login_required
from ..container import Container
from ..core.enums import Role
from .model import Address, Organization, OrganizationMember


def address_to_dict(address: Address | None) -> dict | None:
    if address is None:
        return None
    return {
        "zip_code": address.zip_code,
        "complement": address.complement,
        "public_place": address.public_place,
        "city": address.city,
        "state": address.state,
    }


def organization_to_dict(org: Organization) -> dict:
    return {
        "id": str(org.organization_id),
        "name": org.name,
        "created_by": str(org.created_by),
        "created_at": org.created_at.isoformat() if org.created_at else None,
        "address": address_to_dict(org.address),
    }


def member_to_dict(member: OrganizationMember) -> dict:
    return {
        "user_id": str(member.user_id),
        "name": member.name,
        "email": member.email,
        "role": member.role.value,
        "joined_at": member.joined_at.isoformat() if member.joined_at else None,
    }


def register(app: Flask, container: Container) -> None:
    svc = container.organization_service

    @app.route("/api/v1/organizations", methods=["POST"], endpoint="create_organization")
    @login_required
    def create_organization():
        data = json_body()
        org = svc.create_organization(
            creator_id=current_user_id(), name=data.get("name", ""), address=data.get("address")
        )
        return json_ok(organization_to_dict(org), 201, "Organization created")

    @app.route("/api/v1/organizations/mine", methods=["GET"], endpoint="my_organization")
    @login_required
    def my_organization():
        org = svc.get_organization_for_user(current_user_id())
        return json_ok(organization_to_dict(org))

    @app.route("/api/v1/organizations/<org_id>", methods=["GET"], endpoint="get_organization")
    @login_required
    def get_organization(org_id: str):
        org = svc.get_organization(
            requester_id=current_user_id(), organization_id=parse_uuid(org_id, "organization id")
        )
        return json_ok(organization_to_dict(org))

    @app.route("/api/v1/organizations/<org_id>", methods=["PUT"], endpoint="update_organization")
    @login_required
    def update_organization(org_id: str):
        data = json_body()
        org = svc.update_organization(
            requester_id=current_user_id(),
            organization_id=parse_uuid(org_id, "organization id"),
            name=data.get("name", ""),
            address=data.get("address"),
        )
        return json_ok(organization_to_dict(org))

    @app.route("/api/v1/organizations/<org_id>", methods=["DELETE"], endpoint="delete_organization")
    @login_required
    def delete_organization(org_id: str):
        svc.delete_organization(requester_id=current_user_id(), organization_id=parse_uuid(org_id, "organization id"))
        return json_ok(message="Organization deleted")

    @app.route("/api/v1/organizations/<org_id>/members", methods=["GET"], endpoint="list_members")
    @login_required
    def list_members(org_id: str):
        members = svc.list_members(requester_id=current_user_id(), organization_id=parse_uuid(org_id, "organization id"))
        return json_ok([member_to_dict(m) for m in members])

    @app.route("/api/v1/organizations/<org_id>/members", methods=["POST"], endpoint="add_member")
    @login_required
    def add_member(org_id: str):
        data = json_body()
        member = svc.add_member_by_email(
            requester_id=current_user_id(),
            organization_id=parse_uuid(org_id, "organization id"),
            email=data.get("email", ""),
            role=data.get("role") or Role.MEMBER.value,
        )
        return json_ok(member_to_dict(member), 201, "Member added")

    @app.route("/api/v1/organizations/<org_id>/members/<user_id>", methods=["DELETE"], endpoint="remove_member")
    @login_required
    def remove_member(org_id: str, user_id: str):
        svc.remove_member(
            requester_id=current_user_id(),
            organization_id=parse_uuid(org_id, "organization id"),
            target_user_id=parse_uuid(user_id, "user id"),
        )
        return json_ok(message="Member removed")

    @app.route("/api/v1/organizations/<org_id>/leave", methods=["POST"], endpoint="leave_organization")
    @login_required
    def leave_organization(org_id: str):
        svc.leave_organization(user_id=current_user_id(), organization_id=parse_uuid(org_id, "organization id"))
        return json_ok(message="You left the organization")
